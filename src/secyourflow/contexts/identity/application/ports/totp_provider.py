from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class TotpVerificationOutcome(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    REPLAY = "replay"


@dataclass(frozen=True, slots=True)
class TotpVerification:
    """
    TotpVerification: result of checking a submitted code against a step window.

    `matched_step` is set for `valid` and `replay` outcomes and is `None` for `invalid`.
    """

    outcome: TotpVerificationOutcome
    matched_step: int | None = None

    def __post_init__(self) -> None:
        if self.outcome is TotpVerificationOutcome.INVALID:
            if self.matched_step is not None:
                raise ValueError("TotpVerification.matched_step must be None for invalid outcome")
            return
        if self.matched_step is None or self.matched_step < 0:
            raise ValueError("TotpVerification.matched_step must be >= 0 for matched outcomes")

    @property
    def is_valid(self) -> bool:
        return self.outcome is TotpVerificationOutcome.VALID

    @property
    def is_replay(self) -> bool:
        return self.outcome is TotpVerificationOutcome.REPLAY

    @classmethod
    def invalid(cls) -> TotpVerification:
        return cls(outcome=TotpVerificationOutcome.INVALID)

    @classmethod
    def valid(cls, *, matched_step: int) -> TotpVerification:
        return cls(outcome=TotpVerificationOutcome.VALID, matched_step=matched_step)

    @classmethod
    def replay(cls, *, matched_step: int) -> TotpVerification:
        return cls(outcome=TotpVerificationOutcome.REPLAY, matched_step=matched_step)


class TotpProvider(Protocol):
    """
    TotpProvider: time-step one-time code primitive.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/two_factor/
        pyotp_totp_provider.py
      - src/secyourflow/contexts/identity/application/use_cases/challenge_two_factor_totp.py
    """

    def generate_secret(self) -> str:
        """
        Return fresh random base32 secret material.
        """
        ...

    def build_provisioning_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build the `otpauth://totp/...` URI consumed by authenticator apps.
        """
        ...

    def generate_token(self, *, secret: str, at_epoch_ms: int) -> str:
        """
        Return the code for the step containing `at_epoch_ms`.
        """
        ...

    def verify_token(
        self,
        *,
        secret: str,
        code: str,
        last_used_step: int | None,
        at_epoch_ms: int,
    ) -> TotpVerification:
        """
        Check a submitted code against the step window around `at_epoch_ms`.

        Args:
            secret: Plaintext base32 secret.
            code: Raw submitted code; whitespace is ignored.
            last_used_step: Step of the last accepted code, or `None`.
            at_epoch_ms: Verification instant in epoch milliseconds.
        Returns:
            TotpVerification: `valid`, `invalid` or `replay` outcome.
        """
        ...

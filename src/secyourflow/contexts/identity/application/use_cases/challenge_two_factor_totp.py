from __future__ import annotations

import logging
from dataclasses import dataclass

from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.recovery_codes import RecoveryCodes
from secyourflow.contexts.identity.application.ports.secret_sealer import SecretSealer
from secyourflow.contexts.identity.application.ports.totp_provider import TotpProvider
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    require_user,
    resolve_now_ms,
    unseal_secret,
)
from secyourflow.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorInvalidCodeError,
    TwoFactorNotEnrolledError,
    TwoFactorReplayDetectedError,
)
from secyourflow.contexts.identity.domain.entities import TotpUserUpdate
from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChallengeTwoFactorTotpResult:
    used_recovery_code: bool
    recovery_codes_remaining: int

    def __post_init__(self) -> None:
        if self.recovery_codes_remaining < 0:
            raise ValueError("ChallengeTwoFactorTotpResult.recovery_codes_remaining must be >= 0")


class ChallengeTwoFactorTotpUseCase:
    """
    ChallengeTwoFactorTotpUseCase: routine second-factor check for an active user.

    A primary code is tried first. Only an `invalid` primary outcome falls back to
    recovery codes; a replayed primary code is rejected outright so it never burns a
    recovery code.

    Related:
      - src/secyourflow/contexts/identity/application/ports/totp_provider.py
      - src/secyourflow/contexts/identity/application/ports/recovery_codes.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        store: TotpUserStore,
        sealer: SecretSealer,
        totp_provider: TotpProvider,
        recovery_codes: RecoveryCodes,
        clock: IdentityClock,
    ) -> None:
        if store is None:  # type: ignore[truthy-bool]
            raise ValueError("ChallengeTwoFactorTotpUseCase requires store")
        if sealer is None:  # type: ignore[truthy-bool]
            raise ValueError("ChallengeTwoFactorTotpUseCase requires sealer")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("ChallengeTwoFactorTotpUseCase requires totp_provider")
        if recovery_codes is None:  # type: ignore[truthy-bool]
            raise ValueError("ChallengeTwoFactorTotpUseCase requires recovery_codes")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("ChallengeTwoFactorTotpUseCase requires clock")

        self._store = store
        self._sealer = sealer
        self._totp_provider = totp_provider
        self._recovery_codes = recovery_codes
        self._clock = clock

    def challenge(
        self,
        *,
        user_id: UserId,
        code: str,
        now_ms: int | None = None,
    ) -> ChallengeTwoFactorTotpResult:
        """
        Verify a primary or recovery code for an active user.

        Args:
            user_id: Identity user id.
            code: Submitted TOTP code or recovery code.
            now_ms: Optional verification instant in epoch milliseconds.
        Returns:
            ChallengeTwoFactorTotpResult: Which factor matched and how many recovery codes remain.
        Assumptions:
            Callers apply rate limiting before invoking the challenge.
        Raises:
            TwoFactorUserNotFoundError: If the user does not exist.
            TwoFactorNotEnrolledError: If TOTP is not active.
            TwoFactorSecretUnavailableError: If the stored secret cannot be unsealed.
            TwoFactorReplayDetectedError: If the primary code step was already consumed,
                including by a concurrent challenge.
            TwoFactorInvalidCodeError: If neither the primary nor a recovery code matches.
        Side Effects:
            One store update: new last used step, or the reduced recovery hash set.
        """
        record = require_user(store=self._store, user_id=user_id)
        if record.enrollment_state is not TotpEnrollmentState.ACTIVE:
            raise TwoFactorNotEnrolledError()

        effective_now_ms = resolve_now_ms(clock=self._clock, now_ms=now_ms)
        secret = unseal_secret(sealer=self._sealer, record=record)
        verification = self._totp_provider.verify_token(
            secret=secret,
            code=code,
            last_used_step=record.totp_last_used_step,
            at_epoch_ms=effective_now_ms,
        )

        if verification.is_valid and verification.matched_step is not None:
            advanced = self._store.advance_last_used_step(
                user_id=user_id,
                step=verification.matched_step,
            )
            if advanced is None:
                log.warning("concurrently consumed TOTP step rejected for user %s", user_id)
                raise TwoFactorReplayDetectedError()
            log.info("TOTP challenge passed for user %s", user_id)
            return ChallengeTwoFactorTotpResult(
                used_recovery_code=False,
                recovery_codes_remaining=record.recovery_codes_remaining,
            )

        if verification.is_replay:
            log.warning("replayed TOTP code rejected for user %s", user_id)
            raise TwoFactorReplayDetectedError()

        consumption = self._recovery_codes.consume(code, record.totp_recovery_codes_hash or ())
        if not consumption.matched:
            raise TwoFactorInvalidCodeError("Invalid authentication or recovery code.")

        self._store.update_by_id(
            user_id=user_id,
            update=TotpUserUpdate(totp_recovery_codes_hash=consumption.remaining_hashes),
        )
        log.info(
            "recovery code consumed for user %s, %d remaining",
            user_id,
            consumption.remaining,
        )
        return ChallengeTwoFactorTotpResult(
            used_recovery_code=True,
            recovery_codes_remaining=consumption.remaining,
        )

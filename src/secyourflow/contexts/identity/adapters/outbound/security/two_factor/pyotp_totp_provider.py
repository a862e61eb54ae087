from __future__ import annotations

import binascii
import hmac
import re
from urllib.parse import quote

import pyotp

from secyourflow.contexts.identity.application.ports.totp_provider import (
    TotpProvider,
    TotpVerification,
)

TOTP_DIGITS = 6
TOTP_STEP_SECONDS = 30
TOTP_WINDOW_STEPS = 1

_WHITESPACE = re.compile(r"\s+")


class PyOtpTotpProvider(TotpProvider):
    """
    PyOtpTotpProvider: RFC 6238 codes via pyotp with explicit step arithmetic.

    Codes are computed per step index with `pyotp.TOTP.generate_otp`, so the provider
    controls which steps are tried and in what order. The window is tried as delta 0,
    then -1, then +1 (for the default window of one step); the first match wins.

    Related:
      - src/secyourflow/contexts/identity/application/ports/totp_provider.py
      - src/secyourflow/contexts/identity/application/use_cases/challenge_two_factor_totp.py
    """

    def __init__(
        self,
        *,
        digits: int = TOTP_DIGITS,
        step_seconds: int = TOTP_STEP_SECONDS,
        window_steps: int = TOTP_WINDOW_STEPS,
    ) -> None:
        """
        Initialize TOTP parameters.

        Args:
            digits: Number of code digits.
            step_seconds: Step length in seconds.
            window_steps: Steps accepted before and after the current one.
        Returns:
            None.
        Assumptions:
            Defaults (6 digits, 30 s, +-1) are what authenticator apps expect.
        Raises:
            ValueError: If arguments are outside supported ranges.
        Side Effects:
            None.
        """
        if digits <= 0:
            raise ValueError("PyOtpTotpProvider digits must be > 0")
        if step_seconds <= 0:
            raise ValueError("PyOtpTotpProvider step_seconds must be > 0")
        if window_steps < 0:
            raise ValueError("PyOtpTotpProvider window_steps must be >= 0")

        self._digits = digits
        self._step_seconds = step_seconds
        self._step_ms = step_seconds * 1000
        self._deltas = _window_deltas(window_steps=window_steps)
        self._code_pattern = re.compile(rf"[0-9]{{{digits}}}")

    def generate_secret(self) -> str:
        return pyotp.random_base32()

    def build_provisioning_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build `otpauth://totp/{issuer}:{label}?secret=..&issuer=..&digits=..&period=..`.

        Args:
            secret: Base32 secret.
            account_label: Account name shown in the authenticator, usually the email.
            issuer: Issuer name shown in the authenticator.
        Returns:
            str: Provisioning URI with percent-encoded issuer and label.
        Raises:
            ValueError: If any argument is blank.
        """
        normalized_secret = _normalize_secret(secret=secret)
        normalized_label = account_label.strip()
        normalized_issuer = issuer.strip()
        if not normalized_label:
            raise ValueError("PyOtpTotpProvider requires non-empty account_label")
        if not normalized_issuer:
            raise ValueError("PyOtpTotpProvider requires non-empty issuer")

        encoded_issuer = quote(normalized_issuer, safe="")
        encoded_label = quote(normalized_label, safe="@")
        return (
            f"otpauth://totp/{encoded_issuer}:{encoded_label}"
            f"?secret={normalized_secret}"
            f"&issuer={encoded_issuer}"
            f"&digits={self._digits}"
            f"&period={self._step_seconds}"
        )

    def generate_token(self, *, secret: str, at_epoch_ms: int) -> str:
        return self._code_for_step(
            totp=self._build_totp(secret=secret),
            step=self.step_for(at_epoch_ms=at_epoch_ms),
        )

    def verify_token(
        self,
        *,
        secret: str,
        code: str,
        last_used_step: int | None,
        at_epoch_ms: int,
    ) -> TotpVerification:
        """
        Match a submitted code against the step window around `at_epoch_ms`.

        Args:
            secret: Base32 secret.
            code: Submitted code; all whitespace is removed, then exactly `digits` ASCII
                digits are required.
            last_used_step: Step of the last accepted code, or `None`.
            at_epoch_ms: Verification instant in epoch milliseconds.
        Returns:
            TotpVerification: `valid(step)` for a fresh step, `replay(step)` for a step at
            or before `last_used_step`, otherwise `invalid`.
        Assumptions:
            Comparison of candidate codes is constant-time.
        Raises:
            ValueError: If the secret is not valid base32 or the instant is negative.
        Side Effects:
            None.
        """
        normalized_code = _WHITESPACE.sub("", code)
        if not self._code_pattern.fullmatch(normalized_code):
            return TotpVerification.invalid()

        totp = self._build_totp(secret=secret)
        current_step = self.step_for(at_epoch_ms=at_epoch_ms)
        for delta in self._deltas:
            step = current_step + delta
            if step < 0:
                continue
            candidate = self._code_for_step(totp=totp, step=step)
            if not hmac.compare_digest(candidate, normalized_code):
                continue
            if last_used_step is not None and step <= last_used_step:
                return TotpVerification.replay(matched_step=step)
            return TotpVerification.valid(matched_step=step)
        return TotpVerification.invalid()

    def step_for(self, *, at_epoch_ms: int) -> int:
        if at_epoch_ms < 0:
            raise ValueError("PyOtpTotpProvider at_epoch_ms must be >= 0")
        return at_epoch_ms // self._step_ms

    def _build_totp(self, *, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            _normalize_secret(secret=secret),
            digits=self._digits,
            interval=self._step_seconds,
        )

    def _code_for_step(self, *, totp: pyotp.TOTP, step: int) -> str:
        try:
            return totp.generate_otp(step)
        except (binascii.Error, ValueError) as error:
            raise ValueError("PyOtpTotpProvider secret must be valid base32") from error


def _normalize_secret(*, secret: str) -> str:
    normalized = _WHITESPACE.sub("", secret).upper()
    if not normalized:
        raise ValueError("PyOtpTotpProvider requires non-empty secret")
    return normalized


def _window_deltas(*, window_steps: int) -> tuple[int, ...]:
    deltas = [0]
    for distance in range(1, window_steps + 1):
        deltas.extend((-distance, distance))
    return tuple(deltas)

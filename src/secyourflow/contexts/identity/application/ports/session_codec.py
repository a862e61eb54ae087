from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from secyourflow.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class SessionClaims:
    """
    SessionClaims: typed contents of the identity session cookie.

    Timestamps describing authentication events are epoch milliseconds, the same unit
    the TOTP step arithmetic uses. Token lifetime fields are UTC datetimes.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/jwt/hs256_session_codec.py
      - src/secyourflow/contexts/identity/application/services/two_factor_session_policy.py
      - src/secyourflow/contexts/identity/application/services/two_factor_session_updater.py
    """

    user_id: UserId
    issued_at: datetime
    expires_at: datetime
    authenticated_at_ms: int
    totp_enabled: bool = False
    two_factor_verified: bool = False
    two_factor_verified_at_ms: int | None = None

    def __post_init__(self) -> None:
        """
        Validate token lifetime and timestamp invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `issued_at` and `expires_at` are timezone-aware UTC datetimes.
        Raises:
            ValueError: If datetimes are naive or non-UTC, expiration is not after issue
                time, or epoch-millisecond fields are negative.
        Side Effects:
            None.
        """
        _ensure_utc_datetime(name="issued_at", value=self.issued_at)
        _ensure_utc_datetime(name="expires_at", value=self.expires_at)
        if self.expires_at <= self.issued_at:
            raise ValueError("SessionClaims.expires_at must be after issued_at")
        if self.authenticated_at_ms < 0:
            raise ValueError("SessionClaims.authenticated_at_ms must be >= 0")
        if self.two_factor_verified_at_ms is not None and self.two_factor_verified_at_ms < 0:
            raise ValueError("SessionClaims.two_factor_verified_at_ms must be >= 0")


class SessionDecodeError(ValueError):
    """
    SessionDecodeError: session token failed format, signature or lifetime checks.
    """

    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class SessionCodec(Protocol):
    """
    SessionCodec: signs and verifies session tokens carrying `SessionClaims`.
    """

    def encode(self, *, claims: SessionClaims) -> str:
        ...

    def decode(self, *, token: str) -> SessionClaims:
        """
        Verify token and return typed claims.

        Raises:
            SessionDecodeError: If token is malformed, forged or expired.
        """
        ...


def _ensure_utc_datetime(*, name: str, value: datetime) -> None:
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise ValueError(f"{name} must be timezone-aware UTC datetime")
    if offset.total_seconds() != 0:
        raise ValueError(f"{name} must be UTC datetime")

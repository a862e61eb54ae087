from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from secyourflow.contexts.identity.domain.value_objects import TotpEnrollmentState
from secyourflow.shared_kernel.primitives import UserId


class _Unset:
    """Marker for fields a partial update leaves untouched."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True, slots=True)
class TotpUserRecord:
    """
    TotpUserRecord: TOTP view of a user record owned by the user store.

    Invariants:
      - `totp_secret_enc` is present whenever `totp_enabled` is true.
      - `totp_recovery_codes_hash` holds only lowercase hex hashes.
      - `totp_last_used_step` is a non-negative step index when present.

    Related:
      - src/secyourflow/contexts/identity/application/ports/totp_user_store.py
      - src/secyourflow/contexts/identity/adapters/outbound/persistence/in_memory/
        totp_user_store.py
      - alembic/versions/20261019_0001_identity_users_totp_v1.py
    """

    user_id: UserId
    email: str | None
    totp_enabled: bool = False
    totp_secret_enc: str | None = None
    totp_verified_at: datetime | None = None
    totp_recovery_codes_hash: tuple[str, ...] | None = None
    totp_last_used_step: int | None = None

    def __post_init__(self) -> None:
        """
        Validate record invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Stores hand over recovery hashes already coerced to lowercase hex.
        Raises:
            ValueError: If an invariant is violated.
        Side Effects:
            Converts list-like recovery hash collections into tuples.
        """
        if self.totp_enabled and not self.totp_secret_enc:
            raise ValueError("TotpUserRecord.totp_secret_enc is required when totp_enabled")
        if self.totp_last_used_step is not None and self.totp_last_used_step < 0:
            raise ValueError("TotpUserRecord.totp_last_used_step must be >= 0")
        if self.totp_verified_at is not None:
            _ensure_utc_datetime(name="totp_verified_at", value=self.totp_verified_at)
        if self.totp_recovery_codes_hash is not None:
            object.__setattr__(
                self,
                "totp_recovery_codes_hash",
                tuple(self.totp_recovery_codes_hash),
            )

    @property
    def enrollment_state(self) -> TotpEnrollmentState:
        if self.totp_enabled:
            return TotpEnrollmentState.ACTIVE
        if self.totp_secret_enc:
            return TotpEnrollmentState.ENROLLED_UNVERIFIED
        return TotpEnrollmentState.NOT_ENROLLED

    @property
    def recovery_codes_remaining(self) -> int:
        if self.totp_recovery_codes_hash is None:
            return 0
        return len(self.totp_recovery_codes_hash)


@dataclass(frozen=True, slots=True)
class TotpUserUpdate:
    """
    TotpUserUpdate: partial update of TOTP fields; `UNSET` fields are left untouched.

    `None` is a real value here and clears the corresponding column.
    """

    totp_enabled: bool = UNSET
    totp_secret_enc: str | None = UNSET
    totp_verified_at: datetime | None = UNSET
    totp_recovery_codes_hash: tuple[str, ...] | None = UNSET
    totp_last_used_step: int | None = UNSET

    def __post_init__(self) -> None:
        if self.totp_recovery_codes_hash is not UNSET and self.totp_recovery_codes_hash is not None:
            object.__setattr__(
                self,
                "totp_recovery_codes_hash",
                tuple(self.totp_recovery_codes_hash),
            )

    def changes(self) -> dict[str, Any]:
        """
        Return only explicitly set fields, in declaration order.
        """
        values = {
            "totp_enabled": self.totp_enabled,
            "totp_secret_enc": self.totp_secret_enc,
            "totp_verified_at": self.totp_verified_at,
            "totp_recovery_codes_hash": self.totp_recovery_codes_hash,
            "totp_last_used_step": self.totp_last_used_step,
        }
        return {name: value for name, value in values.items() if value is not UNSET}

    def apply_to(self, record: TotpUserRecord) -> TotpUserRecord:
        """
        Build the record that results from applying this update.

        Raises:
            ValueError: If the resulting record violates `TotpUserRecord` invariants.
        """
        return replace(record, **self.changes())


def _ensure_utc_datetime(*, name: str, value: datetime) -> None:
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise ValueError(f"TotpUserRecord.{name} must be timezone-aware UTC datetime")
    if offset.total_seconds() != 0:
        raise ValueError(f"TotpUserRecord.{name} must be UTC datetime")

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class UserId:
    """
    UserId: opaque user identifier shared by identity stores, sessions and API routes.

    Related:
      - src/secyourflow/contexts/identity/domain/entities/totp_user_record.py
      - src/secyourflow/contexts/identity/application/ports/session_codec.py
    """

    value: UUID

    def __post_init__(self) -> None:
        """
        Validate wrapped identifier type.

        Raises:
            ValueError: If `value` is not a UUID instance.
        """
        if not isinstance(self.value, UUID):
            raise ValueError(f"UserId requires UUID value, got {self.value!r}")

    @classmethod
    def from_string(cls, raw_value: str) -> UserId:
        """
        Parse user identifier from its canonical string form.

        Args:
            raw_value: Raw UUID string, surrounding whitespace allowed.
        Returns:
            UserId: Parsed identifier.
        Raises:
            ValueError: If value is blank or not a UUID.
        """
        stripped = raw_value.strip()
        if not stripped:
            raise ValueError("UserId.from_string requires non-empty value")
        return cls(UUID(stripped))

    def __str__(self) -> str:
        return str(self.value)

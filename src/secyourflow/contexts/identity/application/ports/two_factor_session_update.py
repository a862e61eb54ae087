from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

TRUST_TAG_FIELD = "__two_factor_session_update_tag"

_FIELD_VERIFIED = "two_factor_verified"
_FIELD_VERIFIED_AT = "two_factor_verified_at"
_FIELD_AUTHENTICATED_AT = "authenticated_at"
_FIELD_TOTP_ENABLED = "totp_enabled"
_KNOWN_FIELDS = frozenset(
    {
        _FIELD_VERIFIED,
        _FIELD_VERIFIED_AT,
        _FIELD_AUTHENTICATED_AT,
        _FIELD_TOTP_ENABLED,
    }
)


@dataclass(frozen=True, slots=True)
class TwoFactorSessionUpdate:
    """
    TwoFactorSessionUpdate: session mutation requested after a second-factor event.

    Fields:
      - two_factor_verified: required new value of the session flag.
      - two_factor_verified_at_ms: optional verification instant; `None` with
        `two_factor_verified=False` clears the stored instant.
      - authenticated_at_ms: optional new authentication instant.
      - totp_enabled: optional new enrollment flag; `None` leaves it untouched.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/two_factor/
        hmac_session_update_signer.py
      - src/secyourflow/contexts/identity/application/services/two_factor_session_updater.py
    """

    two_factor_verified: bool
    two_factor_verified_at_ms: int | None = None
    authenticated_at_ms: int | None = None
    totp_enabled: bool | None = None

    def __post_init__(self) -> None:
        """
        Validate field types at the boundary.

        Raises:
            ValueError: If a field has the wrong type or a negative timestamp.
        """
        if not isinstance(self.two_factor_verified, bool):
            raise ValueError("TwoFactorSessionUpdate.two_factor_verified must be bool")
        if self.totp_enabled is not None and not isinstance(self.totp_enabled, bool):
            raise ValueError("TwoFactorSessionUpdate.totp_enabled must be bool or None")
        _ensure_epoch_ms(name="two_factor_verified_at_ms", value=self.two_factor_verified_at_ms)
        _ensure_epoch_ms(name="authenticated_at_ms", value=self.authenticated_at_ms)

    def to_payload(self) -> dict[str, Any]:
        """
        Return wire payload with only the fields that carry a value.
        """
        payload: dict[str, Any] = {_FIELD_VERIFIED: self.two_factor_verified}
        if self.two_factor_verified_at_ms is not None:
            payload[_FIELD_VERIFIED_AT] = self.two_factor_verified_at_ms
        if self.authenticated_at_ms is not None:
            payload[_FIELD_AUTHENTICATED_AT] = self.authenticated_at_ms
        if self.totp_enabled is not None:
            payload[_FIELD_TOTP_ENABLED] = self.totp_enabled
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TwoFactorSessionUpdate:
        """
        Parse a wire payload, ignoring the trust tag field.

        Raises:
            ValueError: If a key is not a string, a required field is missing, an unknown
                field is present, or a value has the wrong type.
        """
        if not all(isinstance(key, str) for key in payload):
            raise ValueError("TwoFactorSessionUpdate payload keys must be strings")
        unknown = set(payload) - _KNOWN_FIELDS - {TRUST_TAG_FIELD}
        if unknown:
            raise ValueError(
                "TwoFactorSessionUpdate payload has unknown fields: " + ", ".join(sorted(unknown))
            )
        if _FIELD_VERIFIED not in payload:
            raise ValueError(f"TwoFactorSessionUpdate payload requires {_FIELD_VERIFIED}")
        return cls(
            two_factor_verified=payload[_FIELD_VERIFIED],
            two_factor_verified_at_ms=payload.get(_FIELD_VERIFIED_AT),
            authenticated_at_ms=payload.get(_FIELD_AUTHENTICATED_AT),
            totp_enabled=payload.get(_FIELD_TOTP_ENABLED),
        )


@dataclass(frozen=True, slots=True)
class TrustedTwoFactorSessionUpdate:
    """
    TrustedTwoFactorSessionUpdate: session update plus the server-side trust tag.
    """

    update: TwoFactorSessionUpdate
    tag: str

    def __post_init__(self) -> None:
        if not isinstance(self.update, TwoFactorSessionUpdate):
            raise ValueError("TrustedTwoFactorSessionUpdate.update must be TwoFactorSessionUpdate")
        if not isinstance(self.tag, str) or not self.tag:
            raise ValueError("TrustedTwoFactorSessionUpdate.tag must be non-empty string")

    def to_payload(self) -> dict[str, Any]:
        payload = self.update.to_payload()
        payload[TRUST_TAG_FIELD] = self.tag
        return payload


class TwoFactorSessionUpdateSigner(Protocol):
    """
    TwoFactorSessionUpdateSigner: capability check between TOTP handlers and the session layer.
    """

    def build_trusted_update(self, update: TwoFactorSessionUpdate) -> TrustedTwoFactorSessionUpdate:
        """
        Attach the server-side trust tag.

        Raises:
            KeyMaterialNotConfiguredError: If no session-update key material is configured.
        """
        ...

    def is_trusted(self, candidate: object) -> bool:
        """
        Return whether `candidate` carries a valid tag. Never raises.
        """
        ...


def _ensure_epoch_ms(*, name: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"TwoFactorSessionUpdate.{name} must be int epoch milliseconds or None")
    if value < 0:
        raise ValueError(f"TwoFactorSessionUpdate.{name} must be >= 0")

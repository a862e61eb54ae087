"""
Recovery codes: human-typable one-time backup codes stored as keyed HMAC-SHA256 hashes.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from typing import Any, Mapping, Sequence

from secyourflow.contexts.identity.application.ports.recovery_codes import (
    RecoveryCodeConsumption,
    RecoveryCodes,
)
from secyourflow.platform.config import RECOVERY_CODE_KEY_CANDIDATES, LazyKeyMaterial, derive_key

RECOVERY_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
RECOVERY_CODE_LENGTH = 10
RECOVERY_CODE_GROUP_SIZE = 5
RECOVERY_CODE_KEY_CONTEXT = "totp-recovery-code"

_NON_ALPHANUMERIC = re.compile(r"[^A-Z0-9]")
_HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")


class HmacRecoveryCodes(RecoveryCodes):
    """
    HmacRecoveryCodes: generates, hashes and consumes recovery codes.

    The hashing key is derived from its own key chain, so it differs from the TOTP
    secret-sealing key even when both chains fall back to the same general secret.

    Related:
      - src/secyourflow/contexts/identity/application/ports/recovery_codes.py
      - src/secyourflow/platform/config/key_material.py
    """

    def __init__(self, *, key_material: LazyKeyMaterial) -> None:
        if key_material is None:  # type: ignore[truthy-bool]
            raise ValueError("HmacRecoveryCodes requires key_material")
        self._key_material = key_material
        self._key: bytes | None = None

    @classmethod
    def from_environ(cls, *, environ: Mapping[str, str] | None = None) -> HmacRecoveryCodes:
        return cls(
            key_material=LazyKeyMaterial(candidates=RECOVERY_CODE_KEY_CANDIDATES, environ=environ)
        )

    def assert_configured(self) -> None:
        self._get_key()

    def generate(self, count: int = 10) -> list[str]:
        """
        Generate `count` codes shaped `XXXXX-XXXXX` from the unambiguous alphabet.

        Raises:
            ValueError: If `count` is not positive.
        """
        if count <= 0:
            raise ValueError("HmacRecoveryCodes.generate count must be > 0")
        return [_format_code(raw=_random_code()) for _ in range(count)]

    def hash_code(self, code: str) -> str:
        normalized = normalize_recovery_code(code)
        return hmac.new(self._get_key(), normalized.encode("utf-8"), hashlib.sha256).hexdigest()

    def consume(self, code: str, stored_hashes: Sequence[str]) -> RecoveryCodeConsumption:
        """
        Match a submitted code against stored hashes.

        Args:
            code: Submitted code in any case, with or without separators.
            stored_hashes: Outstanding hashes in stored order.
        Returns:
            RecoveryCodeConsumption: On a match, stored hashes minus the first matching
            entry; otherwise the stored hashes unchanged.
        Assumptions:
            Every entry is compared with `hmac.compare_digest` and the scan never exits
            early, so timing does not depend on the matching position.
        Raises:
            KeyMaterialNotConfiguredError: If no recovery key material is configured.
        Side Effects:
            None.
        """
        stored = tuple(stored_hashes)
        if not normalize_recovery_code(code):
            return RecoveryCodeConsumption(matched=False, remaining_hashes=stored)

        candidate = self.hash_code(code)
        matched_index = -1
        for index, stored_hash in enumerate(stored):
            is_match = hmac.compare_digest(candidate, stored_hash)
            if is_match and matched_index < 0:
                matched_index = index

        if matched_index < 0:
            return RecoveryCodeConsumption(matched=False, remaining_hashes=stored)
        remaining = stored[:matched_index] + stored[matched_index + 1 :]
        return RecoveryCodeConsumption(matched=True, remaining_hashes=remaining)

    def _get_key(self) -> bytes:
        if self._key is None:
            self._key = derive_key(
                material=self._key_material.get(),
                context=RECOVERY_CODE_KEY_CONTEXT,
            )
        return self._key


def normalize_recovery_code(code: str) -> str:
    return _NON_ALPHANUMERIC.sub("", code.strip().upper())


def coerce_recovery_hashes(value: Any) -> tuple[str, ...]:
    """
    Coerce a stored value (JSON array or anything else) into a tuple of hex hashes.

    Non-list values yield an empty tuple; list entries that are not 64-digit hex strings
    are dropped.
    """
    if not isinstance(value, (list, tuple)):
        return ()
    hashes: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        normalized = item.strip().lower()
        if _HASH_PATTERN.match(normalized):
            hashes.append(normalized)
    return tuple(hashes)


def _random_code() -> str:
    return "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))


def _format_code(*, raw: str) -> str:
    return f"{raw[:RECOVERY_CODE_GROUP_SIZE]}-{raw[RECOVERY_CODE_GROUP_SIZE:]}"

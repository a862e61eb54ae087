"""
Operator-supplied key material resolution.

Every logical secret (sealing key, recovery-code key, session-update key, session JWT key)
is fed by an ordered chain of environment variables. The first non-blank value wins.
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from typing import Mapping, Sequence

log = logging.getLogger(__name__)

TOTP_SECRET_KEY_CANDIDATES: tuple[str, ...] = (
    "TOTP_ENCRYPTION_KEY",
    "CREDENTIAL_ENCRYPTION_KEY",
    "AUTH_SECRET",
    "NEXTAUTH_SECRET",
)
CREDENTIAL_KEY_CANDIDATES: tuple[str, ...] = (
    "CREDENTIAL_ENCRYPTION_KEY",
    "AUTH_SECRET",
    "NEXTAUTH_SECRET",
    "TOTP_ENCRYPTION_KEY",
)
RECOVERY_CODE_KEY_CANDIDATES: tuple[str, ...] = (
    "TOTP_RECOVERY_CODE_KEY",
    "TOTP_ENCRYPTION_KEY",
    "AUTH_SECRET",
    "NEXTAUTH_SECRET",
)
SESSION_UPDATE_KEY_CANDIDATES: tuple[str, ...] = (
    "TWO_FACTOR_SESSION_UPDATE_KEY",
    "AUTH_SECRET",
    "NEXTAUTH_SECRET",
    "TOTP_ENCRYPTION_KEY",
)
SESSION_JWT_KEY_CANDIDATES: tuple[str, ...] = (
    "IDENTITY_JWT_SECRET",
    "AUTH_SECRET",
    "NEXTAUTH_SECRET",
)

_KEY_DERIVATION_PREFIX = "secyourflow"
_KEY_DERIVATION_VERSION = "v1"


class KeyMaterialNotConfiguredError(RuntimeError):
    """
    KeyMaterialNotConfiguredError: none of the candidate variables holds key material.

    This is a deployment misconfiguration, never a per-request condition.
    """

    def __init__(self, *, candidates: Sequence[str]) -> None:
        self.candidates = tuple(candidates)
        super().__init__(
            "Key material is not configured; set one of: " + ", ".join(self.candidates)
        )


def find_key_material(*, environ: Mapping[str, str], candidates: Sequence[str]) -> bytes | None:
    """
    Return the first non-blank candidate value as UTF-8 bytes, or `None`.

    Args:
        environ: Runtime environment mapping.
        candidates: Ordered environment variable names.
    Returns:
        bytes | None: Key material of the first configured candidate.
    """
    for name in candidates:
        value = environ.get(name, "").strip()
        if value:
            return value.encode("utf-8")
    return None


def resolve_key_material(*, environ: Mapping[str, str], candidates: Sequence[str]) -> bytes:
    """
    Resolve key material from an ordered candidate chain or fail.

    Args:
        environ: Runtime environment mapping.
        candidates: Ordered environment variable names, most specific first.
    Returns:
        bytes: Raw key material.
    Raises:
        KeyMaterialNotConfiguredError: If every candidate is missing or blank.
    """
    if not candidates:
        raise ValueError("resolve_key_material requires at least one candidate")
    material = find_key_material(environ=environ, candidates=candidates)
    if material is None:
        raise KeyMaterialNotConfiguredError(candidates=candidates)
    return material


def derive_key(*, material: bytes, context: str) -> bytes:
    """
    Derive a 32-byte purpose-bound key from raw key material.

    Args:
        material: Raw operator-supplied key material.
        context: Purpose label, for example `totp-secret` or `totp-recovery-code`.
    Returns:
        bytes: SHA-256 digest of `secyourflow:<context>:v1` followed by the material.
    """
    normalized_context = context.strip()
    if not normalized_context:
        raise ValueError("derive_key requires non-empty context")
    label = f"{_KEY_DERIVATION_PREFIX}:{normalized_context}:{_KEY_DERIVATION_VERSION}"
    return hashlib.sha256(label.encode("utf-8") + material).digest()


class LazyKeyMaterial:
    """
    LazyKeyMaterial: resolves one candidate chain at first use and caches the result.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/sealing/
        aes_gcm_sealed_secret_cipher.py
      - src/secyourflow/contexts/identity/adapters/outbound/security/two_factor/
        hmac_session_update_signer.py
    """

    def __init__(
        self,
        *,
        candidates: Sequence[str],
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Bind candidate chain and environment without reading key material yet.

        Args:
            candidates: Ordered environment variable names.
            environ: Optional environment override; defaults to `os.environ`.
        Raises:
            ValueError: If the candidate chain is empty.
        """
        normalized = tuple(name.strip() for name in candidates if name.strip())
        if not normalized:
            raise ValueError("LazyKeyMaterial requires at least one candidate")
        self._candidates = normalized
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._material: bytes | None = None
        self._lock = threading.Lock()

    @property
    def candidates(self) -> tuple[str, ...]:
        return self._candidates

    def get(self) -> bytes:
        """
        Return cached key material, resolving it on first call.

        Raises:
            KeyMaterialNotConfiguredError: If no candidate is configured.
        """
        if self._material is not None:
            return self._material
        with self._lock:
            if self._material is None:
                self._material = resolve_key_material(
                    environ=self._environ,
                    candidates=self._candidates,
                )
                log.debug("key material resolved for chain starting with %s", self._candidates[0])
            return self._material

    def find(self) -> bytes | None:
        """
        Return key material or `None` when nothing is configured. Never raises.
        """
        try:
            return self.get()
        except KeyMaterialNotConfiguredError:
            return None

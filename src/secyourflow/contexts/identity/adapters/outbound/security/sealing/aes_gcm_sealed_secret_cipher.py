"""
AES-256-GCM sealing of secrets at rest.

Envelope layout: `<version>.<iv>.<tag>.<ciphertext>`, every segment unpadded base64url.
The 12-byte IV is random per call and the tag is the 16-byte GCM authentication tag.
"""

from __future__ import annotations

import base64
import binascii
import os
import re
from typing import Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from secyourflow.contexts.identity.application.ports.secret_sealer import (
    InvalidCredentialError,
    SecretSealer,
)
from secyourflow.platform.config import (
    CREDENTIAL_KEY_CANDIDATES,
    TOTP_SECRET_KEY_CANDIDATES,
    LazyKeyMaterial,
    derive_key,
)

_IV_LENGTH = 12
_TAG_LENGTH = 16
_SEGMENT_SEPARATOR = "."
_B64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]*$")

TOTP_SECRET_VERSION_TAG = "v1"
TOTP_SECRET_KEY_CONTEXT = "totp-secret"
CREDENTIAL_VERSION_TAG = "secv1"
CREDENTIAL_KEY_CONTEXT = "credential"


class AesGcmSealedSecretCipher(SecretSealer):
    """
    AesGcmSealedSecretCipher: versioned AES-256-GCM envelope cipher keyed from operator material.

    The 32-byte key is derived once, on first use, from the configured key-material chain.

    Related:
      - src/secyourflow/contexts/identity/application/ports/secret_sealer.py
      - src/secyourflow/platform/config/key_material.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(
        self,
        *,
        key_material: LazyKeyMaterial,
        key_context: str = TOTP_SECRET_KEY_CONTEXT,
        version_tag: str = TOTP_SECRET_VERSION_TAG,
    ) -> None:
        """
        Initialize cipher without touching key material yet.

        Args:
            key_material: Lazy resolver of the operator-supplied key chain.
            key_context: Purpose label mixed into key derivation.
            version_tag: Envelope version prefix.
        Returns:
            None.
        Assumptions:
            Different secret kinds use different contexts and version tags.
        Raises:
            ValueError: If arguments are missing, blank, or the tag contains the separator.
        Side Effects:
            None.
        """
        if key_material is None:  # type: ignore[truthy-bool]
            raise ValueError("AesGcmSealedSecretCipher requires key_material")
        normalized_context = key_context.strip()
        normalized_tag = version_tag.strip()
        if not normalized_context:
            raise ValueError("AesGcmSealedSecretCipher requires non-empty key_context")
        if not normalized_tag or _SEGMENT_SEPARATOR in normalized_tag:
            raise ValueError("AesGcmSealedSecretCipher requires separator-free version_tag")

        self._key_material = key_material
        self._key_context = normalized_context
        self._version_tag = normalized_tag
        self._aad = f"secyourflow.{normalized_context}.{normalized_tag}".encode("utf-8")
        self._aead: AESGCM | None = None

    @classmethod
    def for_totp_secrets(
        cls,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> AesGcmSealedSecretCipher:
        return cls(
            key_material=LazyKeyMaterial(candidates=TOTP_SECRET_KEY_CANDIDATES, environ=environ),
            key_context=TOTP_SECRET_KEY_CONTEXT,
            version_tag=TOTP_SECRET_VERSION_TAG,
        )

    @classmethod
    def for_credentials(
        cls,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> AesGcmSealedSecretCipher:
        return cls(
            key_material=LazyKeyMaterial(candidates=CREDENTIAL_KEY_CANDIDATES, environ=environ),
            key_context=CREDENTIAL_KEY_CONTEXT,
            version_tag=CREDENTIAL_VERSION_TAG,
        )

    def assert_configured(self) -> None:
        """
        Resolve key material eagerly so misconfiguration fails at startup.

        Raises:
            KeyMaterialNotConfiguredError: If no candidate variable is configured.
        """
        self._get_aead()

    def seal(self, plaintext: str) -> str:
        """
        Encrypt plaintext into `<version>.<iv>.<tag>.<ciphertext>`.

        Args:
            plaintext: Secret to protect.
        Returns:
            str: Envelope; already sealed input is returned unchanged.
        Assumptions:
            Persisted-then-reloaded secrets may be passed back in.
        Raises:
            KeyMaterialNotConfiguredError: If no key material is configured.
        Side Effects:
            Consumes OS randomness for the IV.
        """
        if self.is_sealed(plaintext):
            return plaintext

        iv = os.urandom(_IV_LENGTH)
        sealed = self._get_aead().encrypt(iv, plaintext.encode("utf-8"), self._aad)
        ciphertext, tag = sealed[:-_TAG_LENGTH], sealed[-_TAG_LENGTH:]
        return _SEGMENT_SEPARATOR.join(
            (
                self._version_tag,
                _to_b64url(raw=iv),
                _to_b64url(raw=tag),
                _to_b64url(raw=ciphertext),
            )
        )

    def unseal(self, envelope: str) -> str:
        """
        Authenticate and decrypt an envelope produced by `seal`.

        Args:
            envelope: Sealed value.
        Returns:
            str: Original plaintext.
        Assumptions:
            Every structural and cryptographic failure is reported the same way.
        Raises:
            InvalidCredentialError: If version, segments or authentication tag are invalid.
            KeyMaterialNotConfiguredError: If no key material is configured.
        Side Effects:
            None.
        """
        iv, tag, ciphertext = self._split_envelope(envelope=envelope)
        try:
            plaintext = self._get_aead().decrypt(iv, ciphertext + tag, self._aad)
        except InvalidTag as error:
            raise InvalidCredentialError() from error
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as error:
            raise InvalidCredentialError() from error

    def is_sealed(self, value: str) -> bool:
        try:
            self._split_envelope(envelope=value)
        except InvalidCredentialError:
            return False
        return True

    def _split_envelope(self, *, envelope: str) -> tuple[bytes, bytes, bytes]:
        if not isinstance(envelope, str):
            raise InvalidCredentialError()
        segments = envelope.split(_SEGMENT_SEPARATOR)
        if len(segments) != 4 or segments[0] != self._version_tag:
            raise InvalidCredentialError()
        iv = _from_b64url(segment=segments[1])
        tag = _from_b64url(segment=segments[2])
        ciphertext = _from_b64url(segment=segments[3])
        if len(iv) != _IV_LENGTH or len(tag) != _TAG_LENGTH:
            raise InvalidCredentialError()
        return iv, tag, ciphertext

    def _get_aead(self) -> AESGCM:
        if self._aead is None:
            key = derive_key(material=self._key_material.get(), context=self._key_context)
            self._aead = AESGCM(key)
        return self._aead


def redact_secret(value: str | None) -> str:
    """
    Mask a secret for logs and UI, keeping at most the last four characters.
    """
    if not value:
        return ""
    if len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"


def _to_b64url(*, raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _from_b64url(*, segment: str) -> bytes:
    if not _B64URL_SEGMENT.match(segment) or len(segment) % 4 == 1:
        raise InvalidCredentialError()
    padding = "=" * ((4 - len(segment) % 4) % 4)
    try:
        return base64.urlsafe_b64decode(f"{segment}{padding}".encode("ascii"))
    except (ValueError, binascii.Error) as error:
        raise InvalidCredentialError() from error

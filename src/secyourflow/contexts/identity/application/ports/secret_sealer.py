from __future__ import annotations

from typing import Protocol


class InvalidCredentialError(ValueError):
    """
    InvalidCredentialError: sealed envelope is malformed, has an unknown version or failed
    authentication. The sealed value must not be retried and requires re-issuing.
    """

    code = "invalid_credential"

    def __init__(self, message: str = "Sealed secret is invalid or has been tampered with") -> None:
        super().__init__(message)
        self.message = message


class SecretSealer(Protocol):
    """
    SecretSealer: authenticated symmetric encryption of secrets at rest.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/sealing/
        aes_gcm_sealed_secret_cipher.py
      - src/secyourflow/contexts/identity/application/use_cases/enroll_two_factor_totp.py
    """

    def seal(self, plaintext: str) -> str:
        """
        Encrypt plaintext into a versioned envelope.

        Values that are already sealed envelopes are returned unchanged.

        Raises:
            KeyMaterialNotConfiguredError: If no key material is configured.
        """
        ...

    def unseal(self, envelope: str) -> str:
        """
        Decrypt and authenticate an envelope produced by `seal`.

        Raises:
            InvalidCredentialError: On version mismatch, malformed segments or failed tag check.
            KeyMaterialNotConfiguredError: If no key material is configured.
        """
        ...

    def is_sealed(self, value: str) -> bool:
        ...

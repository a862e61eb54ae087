from .aes_gcm_sealed_secret_cipher import (
    CREDENTIAL_VERSION_TAG,
    TOTP_SECRET_VERSION_TAG,
    AesGcmSealedSecretCipher,
    redact_secret,
)

__all__ = [
    "AesGcmSealedSecretCipher",
    "CREDENTIAL_VERSION_TAG",
    "TOTP_SECRET_VERSION_TAG",
    "redact_secret",
]

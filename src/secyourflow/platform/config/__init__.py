from .key_material import (
    CREDENTIAL_KEY_CANDIDATES,
    RECOVERY_CODE_KEY_CANDIDATES,
    SESSION_JWT_KEY_CANDIDATES,
    SESSION_UPDATE_KEY_CANDIDATES,
    TOTP_SECRET_KEY_CANDIDATES,
    KeyMaterialNotConfiguredError,
    LazyKeyMaterial,
    derive_key,
    find_key_material,
    resolve_key_material,
)

__all__ = [
    "CREDENTIAL_KEY_CANDIDATES",
    "KeyMaterialNotConfiguredError",
    "LazyKeyMaterial",
    "RECOVERY_CODE_KEY_CANDIDATES",
    "SESSION_JWT_KEY_CANDIDATES",
    "SESSION_UPDATE_KEY_CANDIDATES",
    "TOTP_SECRET_KEY_CANDIDATES",
    "derive_key",
    "find_key_material",
    "resolve_key_material",
]

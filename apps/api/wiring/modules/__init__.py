from .identity import (
    IdentityApiModule,
    IdentityRuntimeSettings,
    build_identity_api_module,
    resolve_identity_runtime_settings,
)

__all__ = [
    "IdentityApiModule",
    "IdentityRuntimeSettings",
    "build_identity_api_module",
    "resolve_identity_runtime_settings",
]

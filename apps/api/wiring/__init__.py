from .modules import IdentityApiModule, build_identity_api_module

__all__ = [
    "IdentityApiModule",
    "build_identity_api_module",
]

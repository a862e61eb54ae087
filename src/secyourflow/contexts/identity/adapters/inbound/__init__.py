from .api import (
    RequireCurrentSessionDependency,
    RequireTwoFactorVerifiedDependency,
    SessionCookie,
    build_two_factor_totp_router,
)

__all__ = [
    "RequireCurrentSessionDependency",
    "RequireTwoFactorVerifiedDependency",
    "SessionCookie",
    "build_two_factor_totp_router",
]

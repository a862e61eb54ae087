from .deps import (
    RequireCurrentSessionDependency,
    RequireTwoFactorVerifiedDependency,
    SessionCookie,
    register_two_factor_required_exception_handler,
)
from .routes import build_two_factor_totp_router

__all__ = [
    "RequireCurrentSessionDependency",
    "RequireTwoFactorVerifiedDependency",
    "SessionCookie",
    "build_two_factor_totp_router",
    "register_two_factor_required_exception_handler",
]

from .current_session import RequireCurrentSessionDependency
from .session_cookie import DEFAULT_SESSION_COOKIE_NAME, NO_STORE_HEADERS, SessionCookie
from .two_factor_verified import (
    RequireTwoFactorVerifiedDependency,
    TwoFactorRequiredHttpError,
    register_two_factor_required_exception_handler,
)

__all__ = [
    "DEFAULT_SESSION_COOKIE_NAME",
    "NO_STORE_HEADERS",
    "RequireCurrentSessionDependency",
    "RequireTwoFactorVerifiedDependency",
    "SessionCookie",
    "TwoFactorRequiredHttpError",
    "register_two_factor_required_exception_handler",
]

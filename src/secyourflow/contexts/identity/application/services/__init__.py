from .two_factor_session_policy import (
    RECENT_AUTHENTICATION_WINDOW_MS,
    TWO_FACTOR_REVERIFY_INTERVAL_MS,
    has_recent_two_factor_verification,
    is_recent_authentication,
    is_recent_two_factor_verification,
    is_two_factor_satisfied,
    normalize_session_claims,
)
from .two_factor_session_updater import TwoFactorSessionUpdater

__all__ = [
    "RECENT_AUTHENTICATION_WINDOW_MS",
    "TWO_FACTOR_REVERIFY_INTERVAL_MS",
    "TwoFactorSessionUpdater",
    "has_recent_two_factor_verification",
    "is_recent_authentication",
    "is_recent_two_factor_verification",
    "is_two_factor_satisfied",
    "normalize_session_claims",
]

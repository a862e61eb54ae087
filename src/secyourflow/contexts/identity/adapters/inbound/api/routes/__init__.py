from .two_factor_totp import (
    CHALLENGE_RATE_LIMIT_ATTEMPTS,
    DISABLE_RATE_LIMIT_ATTEMPTS,
    RATE_LIMIT_WINDOW_MS,
    VERIFY_RATE_LIMIT_ATTEMPTS,
    TwoFactorChallengeResponse,
    TwoFactorCodeRequest,
    TwoFactorEnrollResponse,
    TwoFactorStatusResponse,
    build_two_factor_totp_router,
)

__all__ = [
    "CHALLENGE_RATE_LIMIT_ATTEMPTS",
    "DISABLE_RATE_LIMIT_ATTEMPTS",
    "RATE_LIMIT_WINDOW_MS",
    "TwoFactorChallengeResponse",
    "TwoFactorCodeRequest",
    "TwoFactorEnrollResponse",
    "TwoFactorStatusResponse",
    "VERIFY_RATE_LIMIT_ATTEMPTS",
    "build_two_factor_totp_router",
]

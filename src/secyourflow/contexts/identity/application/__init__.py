from .ports import (
    IdentityClock,
    InvalidCredentialError,
    RateLimitDecision,
    RateLimiter,
    RecoveryCodeConsumption,
    RecoveryCodes,
    SecretSealer,
    SessionClaims,
    SessionCodec,
    SessionDecodeError,
    TotpProvider,
    TotpUserStore,
    TotpVerification,
    TotpVerificationOutcome,
    TrustedTwoFactorSessionUpdate,
    TwoFactorMetrics,
    TwoFactorSessionUpdate,
    TwoFactorSessionUpdateSigner,
)
from .services import TwoFactorSessionUpdater

__all__ = [
    "IdentityClock",
    "InvalidCredentialError",
    "RateLimitDecision",
    "RateLimiter",
    "RecoveryCodeConsumption",
    "RecoveryCodes",
    "SecretSealer",
    "SessionClaims",
    "SessionCodec",
    "SessionDecodeError",
    "TotpProvider",
    "TotpUserStore",
    "TotpVerification",
    "TotpVerificationOutcome",
    "TrustedTwoFactorSessionUpdate",
    "TwoFactorMetrics",
    "TwoFactorSessionUpdate",
    "TwoFactorSessionUpdateSigner",
    "TwoFactorSessionUpdater",
]

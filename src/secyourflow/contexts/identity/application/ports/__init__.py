from .clock import IdentityClock
from .rate_limiter import RateLimitDecision, RateLimiter
from .recovery_codes import RecoveryCodeConsumption, RecoveryCodes
from .secret_sealer import InvalidCredentialError, SecretSealer
from .session_codec import SessionClaims, SessionCodec, SessionDecodeError
from .totp_provider import TotpProvider, TotpVerification, TotpVerificationOutcome
from .totp_user_store import TotpUserStore
from .two_factor_metrics import TwoFactorMetrics
from .two_factor_session_update import (
    TRUST_TAG_FIELD,
    TrustedTwoFactorSessionUpdate,
    TwoFactorSessionUpdate,
    TwoFactorSessionUpdateSigner,
)

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
    "TRUST_TAG_FIELD",
    "TotpProvider",
    "TotpUserStore",
    "TotpVerification",
    "TotpVerificationOutcome",
    "TrustedTwoFactorSessionUpdate",
    "TwoFactorMetrics",
    "TwoFactorSessionUpdate",
    "TwoFactorSessionUpdateSigner",
]

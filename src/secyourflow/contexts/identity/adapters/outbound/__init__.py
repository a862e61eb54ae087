from .metrics import NoopTwoFactorMetrics, PrometheusTwoFactorMetrics
from .persistence import (
    IdentityPostgresGateway,
    InMemoryTotpUserStore,
    PostgresTotpUserStore,
    PsycopgIdentityPostgresGateway,
)
from .rate_limit import InMemoryRateLimiter, RedisRateLimiter
from .security import (
    AesGcmSealedSecretCipher,
    HmacRecoveryCodes,
    HmacTwoFactorSessionUpdateSigner,
    Hs256SessionCodec,
    PyOtpTotpProvider,
)
from .time import SystemIdentityClock

__all__ = [
    "AesGcmSealedSecretCipher",
    "HmacRecoveryCodes",
    "HmacTwoFactorSessionUpdateSigner",
    "Hs256SessionCodec",
    "IdentityPostgresGateway",
    "InMemoryRateLimiter",
    "InMemoryTotpUserStore",
    "NoopTwoFactorMetrics",
    "PostgresTotpUserStore",
    "PrometheusTwoFactorMetrics",
    "PsycopgIdentityPostgresGateway",
    "PyOtpTotpProvider",
    "RedisRateLimiter",
    "SystemIdentityClock",
]

from .jwt import Hs256SessionCodec
from .sealing import AesGcmSealedSecretCipher, redact_secret
from .two_factor import (
    HmacRecoveryCodes,
    HmacTwoFactorSessionUpdateSigner,
    PyOtpTotpProvider,
    coerce_recovery_hashes,
)

__all__ = [
    "AesGcmSealedSecretCipher",
    "HmacRecoveryCodes",
    "HmacTwoFactorSessionUpdateSigner",
    "Hs256SessionCodec",
    "PyOtpTotpProvider",
    "coerce_recovery_hashes",
    "redact_secret",
]

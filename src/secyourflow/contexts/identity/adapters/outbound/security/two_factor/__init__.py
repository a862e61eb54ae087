from .hmac_recovery_codes import (
    RECOVERY_CODE_ALPHABET,
    HmacRecoveryCodes,
    coerce_recovery_hashes,
    normalize_recovery_code,
)
from .hmac_session_update_signer import HmacTwoFactorSessionUpdateSigner
from .pyotp_totp_provider import PyOtpTotpProvider

__all__ = [
    "HmacRecoveryCodes",
    "HmacTwoFactorSessionUpdateSigner",
    "PyOtpTotpProvider",
    "RECOVERY_CODE_ALPHABET",
    "coerce_recovery_hashes",
    "normalize_recovery_code",
]

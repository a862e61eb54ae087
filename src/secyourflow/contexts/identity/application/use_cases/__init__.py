from .challenge_two_factor_totp import ChallengeTwoFactorTotpResult, ChallengeTwoFactorTotpUseCase
from .disable_two_factor_totp import DisableTwoFactorTotpResult, DisableTwoFactorTotpUseCase
from .enroll_two_factor_totp import (
    DEFAULT_TOTP_ISSUER,
    EnrollTwoFactorTotpResult,
    EnrollTwoFactorTotpUseCase,
)
from .get_two_factor_status import GetTwoFactorStatusUseCase, TwoFactorStatus
from .regenerate_recovery_codes import (
    RegenerateRecoveryCodesResult,
    RegenerateRecoveryCodesUseCase,
)
from .two_factor_common import RECOVERY_CODE_BATCH_SIZE
from .two_factor_errors import (
    TwoFactorAlreadyEnabledError,
    TwoFactorInvalidCodeError,
    TwoFactorMissingEmailError,
    TwoFactorNotEnrolledError,
    TwoFactorOperationError,
    TwoFactorReplayDetectedError,
    TwoFactorSecretUnavailableError,
    TwoFactorUserNotFoundError,
)
from .verify_two_factor_enrollment import (
    VerifyTwoFactorEnrollmentResult,
    VerifyTwoFactorEnrollmentUseCase,
)

__all__ = [
    "ChallengeTwoFactorTotpResult",
    "ChallengeTwoFactorTotpUseCase",
    "DEFAULT_TOTP_ISSUER",
    "DisableTwoFactorTotpResult",
    "DisableTwoFactorTotpUseCase",
    "EnrollTwoFactorTotpResult",
    "EnrollTwoFactorTotpUseCase",
    "GetTwoFactorStatusUseCase",
    "RECOVERY_CODE_BATCH_SIZE",
    "RegenerateRecoveryCodesResult",
    "RegenerateRecoveryCodesUseCase",
    "TwoFactorAlreadyEnabledError",
    "TwoFactorInvalidCodeError",
    "TwoFactorMissingEmailError",
    "TwoFactorNotEnrolledError",
    "TwoFactorOperationError",
    "TwoFactorReplayDetectedError",
    "TwoFactorSecretUnavailableError",
    "TwoFactorStatus",
    "TwoFactorUserNotFoundError",
    "VerifyTwoFactorEnrollmentResult",
    "VerifyTwoFactorEnrollmentUseCase",
]

from .totp_enrollment_state import TotpEnrollmentState

__all__ = [
    "TotpEnrollmentState",
]

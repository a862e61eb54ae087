from .entities import UNSET, TotpUserRecord, TotpUserUpdate
from .value_objects import TotpEnrollmentState

__all__ = [
    "TotpEnrollmentState",
    "TotpUserRecord",
    "TotpUserUpdate",
    "UNSET",
]

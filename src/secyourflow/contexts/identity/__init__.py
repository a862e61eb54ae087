from .application import (
    IdentityClock,
    SessionClaims,
    TotpUserStore,
    TwoFactorSessionUpdate,
    TwoFactorSessionUpdater,
)
from .domain import TotpEnrollmentState, TotpUserRecord, TotpUserUpdate

__all__ = [
    "IdentityClock",
    "SessionClaims",
    "TotpEnrollmentState",
    "TotpUserRecord",
    "TotpUserStore",
    "TotpUserUpdate",
    "TwoFactorSessionUpdate",
    "TwoFactorSessionUpdater",
]

from .totp_user_record import UNSET, TotpUserRecord, TotpUserUpdate

__all__ = [
    "TotpUserRecord",
    "TotpUserUpdate",
    "UNSET",
]

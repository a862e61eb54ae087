from .totp_user_store import InMemoryTotpUserStore

__all__ = [
    "InMemoryTotpUserStore",
]

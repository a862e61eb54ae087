from .gateway import IdentityPostgresGateway, PsycopgIdentityPostgresGateway
from .totp_user_store import PostgresTotpUserStore

__all__ = [
    "IdentityPostgresGateway",
    "PostgresTotpUserStore",
    "PsycopgIdentityPostgresGateway",
]

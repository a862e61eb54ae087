from .in_memory import InMemoryTotpUserStore
from .postgres import IdentityPostgresGateway, PostgresTotpUserStore, PsycopgIdentityPostgresGateway

__all__ = [
    "IdentityPostgresGateway",
    "InMemoryTotpUserStore",
    "PostgresTotpUserStore",
    "PsycopgIdentityPostgresGateway",
]

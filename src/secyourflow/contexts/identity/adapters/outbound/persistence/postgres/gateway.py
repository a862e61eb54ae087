from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, cast

import psycopg
from psycopg.errors import QueryCanceled
from psycopg.rows import dict_row

log = logging.getLogger(__name__)

IDENTITY_APPLICATION_NAME = "secyourflow-identity"
DEFAULT_STATEMENT_TIMEOUT_MS = 5_000


class IdentityPostgresGateway(Protocol):
    """
    IdentityPostgresGateway: single-row SQL gateway used by the TOTP user store.

    Every TOTP store operation is one statement that reads or returns at most one user
    row, so `fetch_one` is the whole surface.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/persistence/postgres/
        totp_user_store.py
      - alembic/versions/20261019_0001_identity_users_totp_v1.py
    """

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """
        Execute one statement and return its first row.

        Args:
            query: SQL text with `%(name)s` placeholders.
            parameters: Bind parameters mapping.
        Returns:
            Mapping[str, Any] | None: First row, or `None` when the statement matched nothing.
        Raises:
            Exception: Storage/driver exceptions from implementation.
        Side Effects:
            Executes one SQL statement and commits it.
        """
        ...


class PsycopgIdentityPostgresGateway(IdentityPostgresGateway):
    """
    PsycopgIdentityPostgresGateway: psycopg3 gateway with a per-connection statement timeout.

    Each call opens one connection tagged with `application_name` and a server-side
    `statement_timeout`, so a blocked row lock on `identity_users` fails the request
    instead of holding it open. The connection context commits on success and rolls
    back on error.
    """

    def __init__(
        self,
        *,
        dsn: str,
        statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS,
        application_name: str = IDENTITY_APPLICATION_NAME,
    ) -> None:
        """
        Validate connection settings.

        Args:
            dsn: Postgres URL or libpq conninfo.
            statement_timeout_ms: Server-side statement timeout; zero disables it.
            application_name: Name reported in `pg_stat_activity`.
        Returns:
            None.
        Raises:
            ValueError: If dsn or application name is blank or the timeout is negative.
        Side Effects:
            None.
        """
        normalized_dsn = dsn.strip()
        if not normalized_dsn:
            raise ValueError("PsycopgIdentityPostgresGateway requires non-empty dsn")
        if statement_timeout_ms < 0:
            raise ValueError("PsycopgIdentityPostgresGateway statement_timeout_ms must be >= 0")
        normalized_name = application_name.strip()
        if not normalized_name:
            raise ValueError("PsycopgIdentityPostgresGateway requires non-empty application_name")
        self._dsn = normalized_dsn
        self._connect_options = {
            "application_name": normalized_name,
            "options": f"-c statement_timeout={statement_timeout_ms}",
        }

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        try:
            with psycopg.connect(
                self._dsn,
                row_factory=cast(Any, dict_row),
                **self._connect_options,
            ) as connection:
                with connection.cursor() as cursor:
                    cursor.execute(cast(Any, query), parameters)
                    row = cursor.fetchone()
        except QueryCanceled:
            log.warning("identity SQL statement cancelled by statement_timeout")
            raise
        if row is None:
            return None
        return dict(row)

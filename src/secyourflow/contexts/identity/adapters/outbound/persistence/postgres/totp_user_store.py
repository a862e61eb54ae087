from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

from psycopg.types.json import Jsonb

from secyourflow.contexts.identity.adapters.outbound.persistence.postgres.gateway import (
    IdentityPostgresGateway,
)
from secyourflow.contexts.identity.adapters.outbound.security.two_factor import (
    coerce_recovery_hashes,
)
from secyourflow.contexts.identity.application.ports.totp_user_store import TotpUserStore
from secyourflow.contexts.identity.domain.entities import TotpUserRecord, TotpUserUpdate
from secyourflow.shared_kernel.primitives import UserId

_RETURNING_COLUMNS = """
            user_id,
            email,
            totp_enabled,
            totp_secret_enc,
            totp_verified_at,
            totp_recovery_codes_hash,
            totp_last_used_step
"""


class PostgresTotpUserStore(TotpUserStore):
    """
    PostgresTotpUserStore: TOTP columns of the `identity_users` table.

    Updates are single `UPDATE ... RETURNING` statements, so each call reads back the
    committed row.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/persistence/postgres/gateway.py
      - alembic/versions/20261019_0001_identity_users_totp_v1.py
    """

    def __init__(
        self,
        *,
        gateway: IdentityPostgresGateway,
        users_table: str = "identity_users",
    ) -> None:
        """
        Initialize store with SQL gateway and target table name.

        Args:
            gateway: SQL gateway.
            users_table: Target users table name.
        Returns:
            None.
        Assumptions:
            Table schema matches the identity users migration.
        Raises:
            ValueError: If gateway is missing or table name is blank.
        Side Effects:
            None.
        """
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTotpUserStore requires gateway")
        normalized_table = users_table.strip()
        if not normalized_table:
            raise ValueError("PostgresTotpUserStore requires non-empty table name")
        self._gateway = gateway
        self._table = normalized_table

    def get_by_id(self, *, user_id: UserId) -> TotpUserRecord | None:
        query = f"""
        SELECT
{_RETURNING_COLUMNS}
        FROM {self._table}
        WHERE user_id = %(user_id)s
        """
        row = self._gateway.fetch_one(query=query, parameters={"user_id": str(user_id)})
        if row is None:
            return None
        return _map_totp_user_row(row=row)

    def update_by_id(self, *, user_id: UserId, update: TotpUserUpdate) -> TotpUserRecord:
        """
        Write set fields of `update` in one statement and return the updated row.

        Args:
            user_id: Identity user id.
            update: Partial TOTP update.
        Returns:
            TotpUserRecord: Row after the update.
        Assumptions:
            Column names come from `TotpUserUpdate` fields, never from user input.
        Raises:
            LookupError: If the user does not exist.
            psycopg.Error: When the database operation fails.
        Side Effects:
            Executes one SQL statement.
        """
        changes = update.changes()
        if not changes:
            current = self.get_by_id(user_id=user_id)
            if current is None:
                raise LookupError(f"user {user_id} not found")
            return current

        parameters: dict[str, Any] = {"user_id": str(user_id)}
        assignments: list[str] = []
        for column, value in changes.items():
            assignments.append(f"{column} = %({column})s")
            parameters[column] = _to_sql_value(column=column, value=value)
        assignments.append("updated_at = NOW()")

        query = f"""
        UPDATE {self._table}
        SET
            {", ".join(assignments)}
        WHERE user_id = %(user_id)s
        RETURNING
{_RETURNING_COLUMNS}
        """
        row = self._gateway.fetch_one(query=query, parameters=parameters)
        if row is None:
            raise LookupError(f"user {user_id} not found")
        return _map_totp_user_row(row=row)

    def advance_last_used_step(self, *, user_id: UserId, step: int) -> TotpUserRecord | None:
        """
        Advance `totp_last_used_step` with a guarded `UPDATE`.

        Args:
            user_id: Identity user id.
            step: Matched step index.
        Returns:
            TotpUserRecord | None: Updated row, or `None` when the stored step is already
            at or after `step`.
        Assumptions:
            Row locking of `UPDATE` serializes concurrent writers; the loser re-evaluates
            the `WHERE` guard against the committed step and matches no row.
        Raises:
            LookupError: If the user does not exist.
            psycopg.Error: When the database operation fails.
        Side Effects:
            Executes one SQL statement, plus one read when no row was updated.
        """
        query = f"""
        UPDATE {self._table}
        SET
            totp_last_used_step = %(step)s,
            updated_at = NOW()
        WHERE user_id = %(user_id)s
          AND (totp_last_used_step IS NULL OR totp_last_used_step < %(step)s)
        RETURNING
{_RETURNING_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={"user_id": str(user_id), "step": step},
        )
        if row is not None:
            return _map_totp_user_row(row=row)
        if self.get_by_id(user_id=user_id) is None:
            raise LookupError(f"user {user_id} not found")
        return None


def _to_sql_value(*, column: str, value: Any) -> Any:
    if column == "totp_recovery_codes_hash" and value is not None:
        return Jsonb(list(value))
    return value


def _map_totp_user_row(*, row: Mapping[str, Any]) -> TotpUserRecord:
    """
    Map SQL row into `TotpUserRecord`.

    Args:
        row: Row mapping with TOTP columns.
    Returns:
        TotpUserRecord: Immutable record.
    Assumptions:
        `totp_recovery_codes_hash` is JSONB decoded by psycopg into Python lists.
    Raises:
        ValueError: If row values violate record invariants.
    Side Effects:
        None.
    """
    raw_user_id = row["user_id"]
    user_id = UserId(raw_user_id) if isinstance(raw_user_id, UUID) else UserId.from_string(
        str(raw_user_id)
    )
    raw_hashes = row.get("totp_recovery_codes_hash")
    raw_step = row.get("totp_last_used_step")
    return TotpUserRecord(
        user_id=user_id,
        email=row.get("email"),
        totp_enabled=bool(row.get("totp_enabled", False)),
        totp_secret_enc=row.get("totp_secret_enc"),
        totp_verified_at=_as_utc(value=row.get("totp_verified_at")),
        totp_recovery_codes_hash=None if raw_hashes is None else coerce_recovery_hashes(raw_hashes),
        totp_last_used_step=None if raw_step is None else int(raw_step),
    )


def _as_utc(*, value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

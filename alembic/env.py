from __future__ import annotations

import os

from sqlalchemy import create_engine, pool
from sqlalchemy.engine import URL, Connection

from alembic import context
from apps.migrations.main import (
    IDENTITY_VERSION_TABLE,
    resolve_identity_dsn,
    to_sqlalchemy_psycopg_url,
)

config = context.config

target_metadata = None


def _identity_url() -> URL:
    """
    Resolve the identity database URL for standalone `alembic` invocations.

    Args:
        None.
    Returns:
        URL: `sqlalchemy.url` from `alembic.ini` when set, else `IDENTITY_PG_DSN`.
    Raises:
        ValueError: If neither is configured.
    """
    configured = (config.get_main_option("sqlalchemy.url") or "").strip()
    dsn = resolve_identity_dsn(arg_dsn=configured, environ=os.environ)
    return to_sqlalchemy_psycopg_url(dsn=dsn)


def run_migrations_offline() -> None:
    """
    Emit identity migration SQL without a database connection (`alembic upgrade --sql`).

    Side Effects:
        Writes SQL to Alembic output.
    """
    context.configure(
        url=_identity_url(),
        target_metadata=target_metadata,
        version_table=IDENTITY_VERSION_TABLE,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_on(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        version_table=IDENTITY_VERSION_TABLE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations on the connection injected by `apps.migrations.main`, or on a new one.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        The injected connection already holds the migration advisory lock.
    Raises:
        Exception: Alembic configuration/runtime errors.
    Side Effects:
        Opens DB connection (when not injected) and applies schema changes.
    """
    injected_connection = config.attributes.get("connection")
    if isinstance(injected_connection, Connection):
        _run_on(injected_connection)
        return

    engine = create_engine(_identity_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _run_on(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

"""
Identity schema migration runner.

`secyourflow-migrations` upgrades the `IDENTITY_PG_DSN` database to the latest
`identity_users` revision under a Postgres advisory lock. With `--check` it only reports
whether the schema is at head, so a deploy can gate the API start on it.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Mapping

from psycopg.conninfo import conninfo_to_dict
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection
from sqlalchemy.engine.url import make_url

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

log = logging.getLogger(__name__)

IDENTITY_DSN_ENV = "IDENTITY_PG_DSN"
IDENTITY_VERSION_TABLE = "identity_alembic_version"
_DEFAULT_LOCK_KEY = 70211904411
_POSTGRES_URL_PREFIXES: tuple[str, ...] = (
    "postgresql+psycopg://",
    "postgresql://",
    "postgres://",
)
_CONNINFO_URL_FIELDS = frozenset({"dbname", "host", "hostaddr", "password", "port", "user"})

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PENDING = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secyourflow-migrations",
        description="Apply or check identity schema migrations.",
    )
    parser.add_argument(
        "--dsn",
        default="",
        help=f"Postgres DSN. Falls back to ${IDENTITY_DSN_ENV} when omitted.",
    )
    parser.add_argument(
        "--lock-key",
        type=int,
        default=_DEFAULT_LOCK_KEY,
        help="Advisory lock key held while upgrading.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report whether the identity schema is at head; exit 2 when behind.",
    )
    return parser


def resolve_identity_dsn(*, arg_dsn: str, environ: Mapping[str, str]) -> str:
    """
    Pick the identity database DSN: explicit argument first, then `IDENTITY_PG_DSN`.

    Raises:
        ValueError: If neither source carries a DSN.
    """
    dsn = arg_dsn.strip() or environ.get(IDENTITY_DSN_ENV, "").strip()
    if not dsn:
        raise ValueError(f"Migration DSN is required via --dsn or {IDENTITY_DSN_ENV}")
    return dsn


def _build_alembic_config(*, repo_root: Path) -> Config:
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        raise ValueError(f"Missing Alembic config file: {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(repo_root / "alembic"))
    return config


def _upgrade_head_under_lock(*, config: Config, sqlalchemy_url: URL, lock_key: int) -> None:
    """
    Upgrade the identity schema to head while holding a session advisory lock.

    Args:
        config: Prepared Alembic config.
        sqlalchemy_url: psycopg SQLAlchemy URL of the identity database.
        lock_key: Advisory lock key shared by every deploy of this service.
    Returns:
        None.
    Assumptions:
        `alembic/env.py` runs on the connection passed through `config.attributes`,
        which is the one holding the lock.
    Raises:
        Exception: Any DB or Alembic failure, after rollback and lock release.
    Side Effects:
        Applies DB schema migrations.
    """
    engine = create_engine(sqlalchemy_url, pool_pre_ping=True)
    with engine.connect() as connection:
        connection.execute(text("SELECT pg_advisory_lock(:lock_key)"), {"lock_key": lock_key})
        log.info("holding identity migration lock %d", lock_key)
        try:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
            connection.commit()
            log.info("identity schema upgraded to %s", _head_revision(config=config))
        except Exception:  # noqa: BLE001
            connection.rollback()
            raise
        finally:
            connection.execute(
                text("SELECT pg_advisory_unlock(:lock_key)"),
                {"lock_key": lock_key},
            )
            connection.commit()


def _pending_revision(*, config: Config, sqlalchemy_url: URL) -> tuple[str | None, str | None]:
    """
    Read the applied identity revision next to the head revision of the script directory.

    Returns:
        tuple[str | None, str | None]: `(current, head)`; `current` is `None` on an empty
        database.
    """
    engine = create_engine(sqlalchemy_url, pool_pre_ping=True)
    with engine.connect() as connection:
        current = _current_revision(connection=connection)
    return current, _head_revision(config=config)


def _current_revision(*, connection: Connection) -> str | None:
    context = MigrationContext.configure(
        connection,
        opts={"version_table": IDENTITY_VERSION_TABLE},
    )
    return context.get_current_revision()


def _head_revision(*, config: Config) -> str | None:
    return ScriptDirectory.from_config(config).get_current_head()


def to_sqlalchemy_psycopg_url(*, dsn: str) -> URL:
    """
    Normalize DSN to SQLAlchemy psycopg URL from URL DSN or libpq conninfo.

    Args:
        dsn: Raw Postgres DSN.
    Returns:
        URL: SQLAlchemy URL using `postgresql+psycopg` dialect.
    Assumptions:
        The API reads the same `IDENTITY_PG_DSN` through psycopg, so both URL and
        conninfo spellings must work here too.
    Raises:
        ValueError: If DSN is empty or unsupported.
    Side Effects:
        None.
    """
    normalized = dsn.strip()
    if not normalized:
        raise ValueError("Postgres DSN cannot be empty")
    if normalized.startswith(_POSTGRES_URL_PREFIXES):
        parsed_url = make_url(normalized)
        if parsed_url.drivername not in {"postgresql", "postgres", "postgresql+psycopg"}:
            raise ValueError("Postgres URL DSN must use postgresql:// or postgres:// scheme")
        return parsed_url.set(drivername="postgresql+psycopg")
    return _url_from_conninfo(conninfo_dsn=normalized)


def _url_from_conninfo(*, conninfo_dsn: str) -> URL:
    try:
        fields = conninfo_to_dict(conninfo_dsn)
    except Exception as error:  # noqa: BLE001
        raise ValueError("Postgres DSN must be URL or libpq conninfo format") from error

    raw_port = str(fields.get("port", "")).strip()
    port: int | None = None
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as error:
            raise ValueError("Conninfo port must be numeric when provided") from error

    query = {
        key: str(value)
        for key, value in sorted(fields.items())
        if key not in _CONNINFO_URL_FIELDS and str(value)
    }
    return URL.create(
        "postgresql+psycopg",
        username=str(fields.get("user", "")).strip() or None,
        password=str(fields.get("password", "")).strip() or None,
        host=str(fields.get("host", fields.get("hostaddr", ""))).strip() or None,
        port=port,
        database=str(fields.get("dbname", "")).strip() or None,
        query=query,
    )


def _run_check(*, config: Config, sqlalchemy_url: URL) -> int:
    current, head = _pending_revision(config=config, sqlalchemy_url=sqlalchemy_url)
    if current == head:
        log.info("identity schema is at head %s", head)
        return EXIT_OK
    log.warning("identity schema at %s, head is %s", current or "<empty>", head)
    return EXIT_PENDING


def main(argv: list[str] | None = None) -> int:
    """
    Upgrade or check the identity schema.

    Args:
        argv: Optional CLI argument list without program name.
    Returns:
        int: `EXIT_OK`, `EXIT_PENDING` for `--check` on a schema behind head, otherwise
        `EXIT_FAILED`.
    Side Effects:
        Configures root logging, reads environment, connects to Postgres.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = _build_parser().parse_args(argv)
    try:
        dsn = resolve_identity_dsn(arg_dsn=args.dsn, environ=os.environ)
        sqlalchemy_url = to_sqlalchemy_psycopg_url(dsn=dsn)
        config = _build_alembic_config(repo_root=Path(__file__).resolve().parents[2])
        if args.check:
            return _run_check(config=config, sqlalchemy_url=sqlalchemy_url)
        _upgrade_head_under_lock(
            config=config,
            sqlalchemy_url=sqlalchemy_url,
            lock_key=args.lock_key,
        )
    except Exception:  # noqa: BLE001
        log.exception("identity migration failed")
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID

import pytest
from psycopg.types.json import Jsonb

from secyourflow.contexts.identity.adapters.outbound.persistence import PostgresTotpUserStore
from secyourflow.contexts.identity.domain.entities import TotpUserUpdate
from secyourflow.shared_kernel.primitives import UserId

_USER_ID = UserId.from_string("00000000-0000-0000-0000-000000000101")
_HASH_A = "a" * 64
_HASH_B = "B" * 64


class _FakeGateway:
    """
    Gateway fake capturing SQL statements and returning a preset row.
    """

    def __init__(self, *, row: Mapping[str, Any] | None) -> None:
        self.row = row
        self.calls: list[tuple[str, Mapping[str, Any]]] = []

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        self.calls.append((query, parameters))
        return self.row


def _row(**overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "user_id": UUID(str(_USER_ID)),
        "email": "alice@example.com",
        "totp_enabled": True,
        "totp_secret_enc": "v1.a.b.c",
        "totp_verified_at": datetime(2026, 10, 19, 12, 0, 0),
        "totp_recovery_codes_hash": [_HASH_A, _HASH_B, "not-a-hash", 7],
        "totp_last_used_step": 59_362_507,
    }
    row.update(overrides)
    return row


def test_get_by_id_maps_row_into_record() -> None:
    """
    Verify SQL rows are mapped into UTC-aware records with coerced recovery hashes.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        psycopg returns UUID objects and may return naive timestamps.
    Raises:
        AssertionError: If mapping differs.
    Side Effects:
        None.
    """
    gateway = _FakeGateway(row=_row())
    store = PostgresTotpUserStore(gateway=gateway)

    record = store.get_by_id(user_id=_USER_ID)

    assert record is not None
    assert record.user_id == _USER_ID
    assert record.totp_enabled is True
    assert record.totp_verified_at == datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
    assert record.totp_recovery_codes_hash == (_HASH_A, _HASH_B.lower())
    assert record.totp_last_used_step == 59_362_507
    query, parameters = gateway.calls[0]
    assert "FROM identity_users" in query
    assert parameters == {"user_id": str(_USER_ID)}


def test_get_by_id_returns_none_for_missing_row() -> None:
    store = PostgresTotpUserStore(gateway=_FakeGateway(row=None))

    assert store.get_by_id(user_id=_USER_ID) is None


def test_update_by_id_writes_only_set_columns_and_wraps_hashes_as_jsonb() -> None:
    """
    Verify one UPDATE statement binds exactly the set fields.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Recovery hashes are stored in a JSONB column.
    Raises:
        AssertionError: If statement shape or parameters differ.
    Side Effects:
        None.
    """
    gateway = _FakeGateway(row=_row(totp_recovery_codes_hash=[_HASH_A]))
    store = PostgresTotpUserStore(gateway=gateway, users_table="auth_users")

    updated = store.update_by_id(
        user_id=_USER_ID,
        update=TotpUserUpdate(totp_recovery_codes_hash=(_HASH_A,), totp_last_used_step=None),
    )

    assert updated.totp_recovery_codes_hash == (_HASH_A,)
    query, parameters = gateway.calls[0]
    assert query.strip().startswith("UPDATE auth_users")
    assert "totp_recovery_codes_hash = %(totp_recovery_codes_hash)s" in query
    assert "totp_last_used_step = %(totp_last_used_step)s" in query
    assert "totp_enabled =" not in query
    assert "RETURNING" in query
    assert isinstance(parameters["totp_recovery_codes_hash"], Jsonb)
    assert parameters["totp_recovery_codes_hash"].obj == [_HASH_A]
    assert parameters["totp_last_used_step"] is None


def test_update_by_id_raises_lookup_error_when_no_row_returned() -> None:
    store = PostgresTotpUserStore(gateway=_FakeGateway(row=None))

    with pytest.raises(LookupError):
        store.update_by_id(user_id=_USER_ID, update=TotpUserUpdate(totp_enabled=False))


def test_empty_update_reads_current_row() -> None:
    gateway = _FakeGateway(row=_row())
    store = PostgresTotpUserStore(gateway=gateway)

    record = store.update_by_id(user_id=_USER_ID, update=TotpUserUpdate())

    assert record.totp_secret_enc == "v1.a.b.c"
    assert gateway.calls[0][0].strip().startswith("SELECT")


def test_store_rejects_invalid_construction() -> None:
    with pytest.raises(ValueError):
        PostgresTotpUserStore(gateway=None)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        PostgresTotpUserStore(gateway=_FakeGateway(row=None), users_table=" ")


class _ScriptedGateway:
    """
    Gateway fake returning one scripted row per call.
    """

    def __init__(self, *, rows: list[Mapping[str, Any] | None]) -> None:
        self.rows = list(rows)
        self.calls: list[tuple[str, Mapping[str, Any]]] = []

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        self.calls.append((query, parameters))
        return self.rows.pop(0)


def test_advance_last_used_step_guards_update_on_stored_step() -> None:
    """
    Verify the step write carries the forward-only guard in its WHERE clause.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        The guard is evaluated by the database under the row lock.
    Raises:
        AssertionError: If the statement could overwrite a newer step.
    Side Effects:
        None.
    """
    gateway = _ScriptedGateway(rows=[_row(totp_last_used_step=59_362_508)])
    store = PostgresTotpUserStore(gateway=gateway)

    advanced = store.advance_last_used_step(user_id=_USER_ID, step=59_362_508)

    assert advanced is not None
    assert advanced.totp_last_used_step == 59_362_508
    assert len(gateway.calls) == 1
    query, parameters = gateway.calls[0]
    assert query.strip().startswith("UPDATE identity_users")
    assert "totp_last_used_step = %(step)s" in query
    assert "totp_last_used_step IS NULL OR totp_last_used_step < %(step)s" in query
    assert parameters == {"user_id": str(_USER_ID), "step": 59_362_508}


def test_advance_last_used_step_returns_none_when_step_already_consumed() -> None:
    gateway = _ScriptedGateway(rows=[None, _row()])
    store = PostgresTotpUserStore(gateway=gateway)

    assert store.advance_last_used_step(user_id=_USER_ID, step=59_362_507) is None
    assert gateway.calls[1][0].strip().startswith("SELECT")


def test_advance_last_used_step_raises_lookup_error_for_missing_user() -> None:
    store = PostgresTotpUserStore(gateway=_ScriptedGateway(rows=[None, None]))

    with pytest.raises(LookupError):
        store.advance_last_used_step(user_id=_USER_ID, step=1)

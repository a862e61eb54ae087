from __future__ import annotations

from datetime import datetime, timezone

import pytest

from secyourflow.contexts.identity.adapters.outbound.persistence import InMemoryTotpUserStore
from secyourflow.contexts.identity.domain.entities import TotpUserRecord, TotpUserUpdate
from secyourflow.shared_kernel.primitives import UserId

_USER_ID = UserId.from_string("00000000-0000-0000-0000-000000000101")


def test_update_by_id_applies_only_set_fields() -> None:
    """
    Verify partial updates keep untouched columns and clear columns set to `None`.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        `UNSET` fields are skipped while `None` clears.
    Raises:
        AssertionError: If the stored record differs from the expected merge.
    Side Effects:
        None.
    """
    store = InMemoryTotpUserStore()
    store.add(
        TotpUserRecord(
            user_id=_USER_ID,
            email="alice@example.com",
            totp_secret_enc="v1.a.b.c",
            totp_last_used_step=41,
        )
    )
    verified_at = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

    updated = store.update_by_id(
        user_id=_USER_ID,
        update=TotpUserUpdate(
            totp_enabled=True,
            totp_verified_at=verified_at,
            totp_last_used_step=None,
        ),
    )

    assert updated.totp_enabled is True
    assert updated.totp_secret_enc == "v1.a.b.c"
    assert updated.totp_verified_at == verified_at
    assert updated.totp_last_used_step is None
    assert updated.email == "alice@example.com"
    assert store.get_by_id(user_id=_USER_ID) == updated


def test_update_by_id_raises_for_unknown_user() -> None:
    store = InMemoryTotpUserStore()

    with pytest.raises(LookupError):
        store.update_by_id(user_id=_USER_ID, update=TotpUserUpdate(totp_enabled=False))
    assert store.get_by_id(user_id=_USER_ID) is None


def test_update_by_id_rejects_result_that_breaks_record_invariants() -> None:
    store = InMemoryTotpUserStore()
    original = store.add(TotpUserRecord(user_id=_USER_ID, email="alice@example.com"))

    with pytest.raises(ValueError):
        store.update_by_id(user_id=_USER_ID, update=TotpUserUpdate(totp_enabled=True))

    assert store.get_by_id(user_id=_USER_ID) == original


def test_advance_last_used_step_only_moves_forward() -> None:
    """
    Verify the step guard accepts newer steps and refuses equal or older ones.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        A refused advance leaves the stored record untouched.
    Raises:
        AssertionError: If the stored step decreases or repeats.
    Side Effects:
        None.
    """
    store = InMemoryTotpUserStore()
    store.add(TotpUserRecord(user_id=_USER_ID, email="alice@example.com"))

    first = store.advance_last_used_step(user_id=_USER_ID, step=100)
    newer = store.advance_last_used_step(user_id=_USER_ID, step=101)
    same = store.advance_last_used_step(user_id=_USER_ID, step=101)
    older = store.advance_last_used_step(user_id=_USER_ID, step=100)

    assert first is not None and first.totp_last_used_step == 100
    assert newer is not None and newer.totp_last_used_step == 101
    assert same is None
    assert older is None
    stored = store.get_by_id(user_id=_USER_ID)
    assert stored is not None and stored.totp_last_used_step == 101


def test_advance_last_used_step_raises_for_unknown_user() -> None:
    with pytest.raises(LookupError):
        InMemoryTotpUserStore().advance_last_used_step(user_id=_USER_ID, step=1)

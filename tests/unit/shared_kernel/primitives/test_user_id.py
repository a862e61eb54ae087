from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from secyourflow.shared_kernel.primitives import UserId


def test_user_id_from_string_parses_uuid() -> None:
    """
    Verify UserId parses canonical UUID string values.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        UUID string is valid.
    Raises:
        AssertionError: If parsing fails unexpectedly.
    Side Effects:
        None.
    """
    raw = str(uuid4())

    user_id = UserId.from_string(f"  {raw} ")

    assert str(user_id) == raw
    assert isinstance(user_id.value, UUID)


def test_user_id_from_string_rejects_blank_value() -> None:
    """
    Verify UserId rejects blank UUID input.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Blank value is always invalid.
    Raises:
        AssertionError: If blank value does not raise ValueError.
    Side Effects:
        None.
    """
    with pytest.raises(ValueError):
        UserId.from_string(" ")


def test_user_id_rejects_non_uuid_value() -> None:
    with pytest.raises(ValueError, match="UUID"):
        UserId("00000000-0000-0000-0000-000000000001")  # type: ignore[arg-type]


def test_user_ids_with_same_uuid_are_equal_and_hashable() -> None:
    raw = "00000000-0000-0000-0000-000000000101"

    assert UserId.from_string(raw) == UserId.from_string(raw)
    assert len({UserId.from_string(raw), UserId.from_string(raw)}) == 1

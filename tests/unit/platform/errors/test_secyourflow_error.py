from __future__ import annotations

import pytest

from secyourflow.platform.errors import SecYourFlowError


def test_secyourflow_error_payload_sorts_nested_details() -> None:
    """
    Verify error payload normalizes nested details into sorted plain structures.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Unknown objects inside details are stringified.
    Raises:
        AssertionError: If payload shape or ordering differs.
    Side Effects:
        None.
    """
    error = SecYourFlowError(
        code=" conflict ",
        message=" Conflict happened ",
        details={"b": (1, 2), "a": {"y": 1, "x": object.__name__}},
    )

    payload = error.to_payload()

    assert payload == {
        "error": {
            "code": "conflict",
            "message": "Conflict happened",
            "details": {"a": {"x": "object", "y": 1}, "b": [1, 2]},
        }
    }
    assert list(payload["error"]["details"].keys()) == ["a", "b"]


def test_secyourflow_error_without_details_renders_empty_mapping() -> None:
    error = SecYourFlowError(code="not_found", message="Missing")

    assert error.to_payload()["error"]["details"] == {}


def test_secyourflow_error_rejects_blank_code_and_message() -> None:
    with pytest.raises(ValueError, match="code"):
        SecYourFlowError(code=" ", message="x")
    with pytest.raises(ValueError, match="message"):
        SecYourFlowError(code="conflict", message="")


def test_secyourflow_error_rejects_non_mapping_details() -> None:
    with pytest.raises(TypeError):
        SecYourFlowError(code="conflict", message="x", details=["a"])  # type: ignore[arg-type]

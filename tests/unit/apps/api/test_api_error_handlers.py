from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, ConfigDict

from apps.api.common import register_api_error_handlers
from secyourflow.platform.errors import SecYourFlowError


class _ValidationPayload(BaseModel):
    """
    Validation payload model with deliberately non-lexicographic field order for sorting test.
    """

    model_config = ConfigDict(extra="forbid")

    b: int
    a: int


def test_secyourflow_error_handler_maps_error_to_http_status_and_payload() -> None:
    """
    Verify SecYourFlowError is converted into deterministic API payload and status mapping.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Conflict code must be mapped to HTTP 409 by shared API error handler.
    Raises:
        AssertionError: If payload shape or HTTP status mapping is broken.
    Side Effects:
        None.
    """
    app = FastAPI()
    register_api_error_handlers(app=app)

    @app.get("/boom")
    def boom() -> None:
        raise SecYourFlowError(
            code="conflict",
            message="Conflict happened",
            details={"user_id": "abc"},
        )

    response = TestClient(app).get("/boom")

    assert response.status_code == 409
    assert response.headers["cache-control"] == "no-store"
    assert response.json() == {
        "error": {
            "code": "conflict",
            "message": "Conflict happened",
            "details": {"user_id": "abc"},
        }
    }


def test_request_validation_error_handler_returns_sorted_validation_errors() -> None:
    """
    Verify validation handler returns `validation_error` payload with errors sorted by path.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Missing fields are reported with the stable `required` code.
    Raises:
        AssertionError: If ordering or code normalization differs.
    Side Effects:
        None.
    """
    app = FastAPI()
    register_api_error_handlers(app=app)

    @app.post("/payload")
    def post_payload(payload: _ValidationPayload) -> dict[str, int]:
        return {"sum": payload.a + payload.b}

    response = TestClient(app).post("/payload", json={})

    assert response.status_code == 422
    body = response.json()["error"]
    assert body["code"] == "validation_error"
    assert [item["path"] for item in body["details"]["errors"]] == ["body.a", "body.b"]
    assert {item["code"] for item in body["details"]["errors"]} == {"required"}


def test_unexpected_error_handler_hides_internal_details() -> None:
    app = FastAPI()
    register_api_error_handlers(app=app)

    @app.get("/crash")
    def crash() -> None:
        raise RuntimeError("database password is hunter2")

    response = TestClient(app, raise_server_exceptions=False).get("/crash")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "unexpected_error"
    assert "hunter2" not in response.text


def test_unknown_error_code_maps_to_internal_server_error() -> None:
    app = FastAPI()
    register_api_error_handlers(app=app)

    @app.get("/odd")
    def odd() -> None:
        raise SecYourFlowError(code="invalid_credential", message="Credential unreadable")

    response = TestClient(app).get("/odd")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "invalid_credential"

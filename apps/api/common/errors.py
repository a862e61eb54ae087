"""
Shared API error handlers for the SecYourFlowError contract and 422 payloads.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from secyourflow.platform.errors import SecYourFlowError

log = logging.getLogger(__name__)

_STATUS_BY_CODE: Mapping[str, int] = {
    "validation_error": 422,
    "not_found": 404,
    "forbidden": 403,
    "conflict": 409,
    "unauthorized": 401,
    "unexpected_error": 500,
}
_NO_STORE_HEADERS: Mapping[str, str] = {"Cache-Control": "no-store"}


def register_api_error_handlers(*, app: FastAPI) -> None:
    """
    Register global handlers for SecYourFlowError, request validation and unexpected errors.

    Args:
        app: FastAPI application instance.
    Returns:
        None.
    Assumptions:
        Handlers are installed once during application startup.
    Raises:
        ValueError: If `app` dependency is missing.
    Side Effects:
        Mutates FastAPI exception-handler registry.
    """
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_api_error_handlers requires app")

    app.add_exception_handler(SecYourFlowError, secyourflow_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


def secyourflow_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Convert SecYourFlowError into the `{"error": {...}}` JSON envelope.

    Args:
        _request: Starlette request object (unused).
        error: Raised SecYourFlowError instance.
    Returns:
        JSONResponse: Response whose status is derived from the error code.
    Assumptions:
        Unknown codes map to 500.
    Raises:
        None.
    Side Effects:
        None.
    """
    typed_error = cast(SecYourFlowError, error)
    return JSONResponse(
        status_code=_STATUS_BY_CODE.get(typed_error.code, 500),
        content=typed_error.to_payload(),
        headers=dict(_NO_STORE_HEADERS),
    )


def request_validation_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Convert FastAPI RequestValidationError into a `validation_error` payload.

    Args:
        _request: Starlette request object (unused).
        error: Raised validation exception from FastAPI/Pydantic.
    Returns:
        JSONResponse: HTTP 422 payload with `details.errors` sorted by path, code and message.
    Raises:
        None.
    Side Effects:
        None.
    """
    validation_error = cast(RequestValidationError, error)
    wrapped = SecYourFlowError(
        code="validation_error",
        message="Validation failed",
        details={"errors": _sorted_validation_errors(raw_errors=validation_error.errors())},
    )
    return secyourflow_error_handler(_request, wrapped)


def unexpected_error_handler(request: Request, error: Exception) -> JSONResponse:
    """
    Last-resort handler: log the failure and answer 500 without leaking internals.
    """
    log.exception(
        "unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=error,
    )
    wrapped = SecYourFlowError(
        code="unexpected_error",
        message="Unexpected server error",
    )
    return secyourflow_error_handler(request, wrapped)


def _sorted_validation_errors(*, raw_errors: Any) -> list[dict[str, str]]:
    if not isinstance(raw_errors, Sequence) or isinstance(raw_errors, (str, bytes, bytearray)):
        return []

    normalized_items: list[dict[str, str]] = []
    for raw_error in raw_errors:
        if not isinstance(raw_error, Mapping):
            normalized_items.append(
                {
                    "path": "unknown",
                    "code": "validation_error",
                    "message": str(raw_error),
                }
            )
            continue
        normalized_items.append(
            {
                "path": _normalize_error_path(loc=raw_error.get("loc")),
                "code": _normalize_error_code(raw_type=raw_error.get("type")),
                "message": str(raw_error.get("msg", "Validation error")),
            }
        )

    return sorted(
        normalized_items,
        key=lambda item: (item["path"], item["code"], item["message"]),
    )


def _normalize_error_path(*, loc: Any) -> str:
    """
    Convert a FastAPI `loc` tuple into a dot-delimited path such as `body.code`.
    """
    if isinstance(loc, Sequence) and not isinstance(loc, (str, bytes, bytearray)):
        path_parts = [str(part) for part in loc]
        if path_parts:
            return ".".join(path_parts)
    if loc is None:
        return "unknown"
    return str(loc)


def _normalize_error_code(*, raw_type: Any) -> str:
    if raw_type is None:
        return "validation_error"
    normalized = str(raw_type).strip().lower()
    if not normalized:
        return "validation_error"
    # pydantic reports absent fields as `missing`
    if normalized == "missing" or normalized.endswith(".missing"):
        return "required"
    return normalized

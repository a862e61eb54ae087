from __future__ import annotations

from typing import cast

from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import JSONResponse

from secyourflow.contexts.identity.adapters.inbound.api.deps.current_session import (
    RequireCurrentSessionDependency,
)
from secyourflow.contexts.identity.adapters.inbound.api.deps.session_cookie import (
    NO_STORE_HEADERS,
)
from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims
from secyourflow.contexts.identity.application.services import (
    TWO_FACTOR_REVERIFY_INTERVAL_MS,
    is_two_factor_satisfied,
)
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    datetime_to_epoch_ms,
)


class TwoFactorRequiredHttpError(PermissionError):
    """
    TwoFactorRequiredHttpError: HTTP-facing 403 raised when a session still owes a second factor.

    Related:
      - src/secyourflow/contexts/identity/adapters/inbound/api/deps/two_factor_verified.py
      - apps/api/main/app.py
    """

    def __init__(self, *, code: str = "two_factor_required", message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def payload(self) -> dict[str, str]:
        return {
            "error": self.code,
            "message": self.message,
        }


def two_factor_required_http_error_handler(
    _request: Request,
    error: Exception,
) -> JSONResponse:
    """
    Map `TwoFactorRequiredHttpError` to the top-level 403 JSON payload.

    Args:
        _request: Starlette request object (unused).
        error: Raised 2FA-required error.
    Returns:
        JSONResponse: HTTP 403 `{"error": "two_factor_required", "message": "..."}`.
    Raises:
        None.
    Side Effects:
        None.
    """
    typed_error = cast(TwoFactorRequiredHttpError, error)
    return JSONResponse(
        status_code=403,
        content=typed_error.payload(),
        headers=NO_STORE_HEADERS,
    )


def register_two_factor_required_exception_handler(*, app: FastAPI) -> None:
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_two_factor_required_exception_handler requires app")
    app.add_exception_handler(
        TwoFactorRequiredHttpError,
        two_factor_required_http_error_handler,
    )


class RequireTwoFactorVerifiedDependency:
    """
    RequireTwoFactorVerifiedDependency: reusable FastAPI dependency for second-factor gated routes.

    Sessions of users without TOTP pass. Sessions with TOTP pass only when the last
    verification is within `max_age_ms`.

    Related:
      - src/secyourflow/contexts/identity/application/services/two_factor_session_policy.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/deps/current_session.py
    """

    def __init__(
        self,
        *,
        current_session_dependency: RequireCurrentSessionDependency,
        clock: IdentityClock,
        max_age_ms: int = TWO_FACTOR_REVERIFY_INTERVAL_MS,
    ) -> None:
        """
        Initialize dependency with session resolver, clock and re-verify interval.

        Args:
            current_session_dependency: Dependency resolving session claims.
            clock: Clock used to age the last verification.
            max_age_ms: Maximum age of the last verification.
        Returns:
            None.
        Assumptions:
            `current_session_dependency` raises 401 errors when unauthorized.
        Raises:
            ValueError: If dependencies are missing or `max_age_ms` is not positive.
        Side Effects:
            None.
        """
        if current_session_dependency is None:  # type: ignore[truthy-bool]
            raise ValueError(
                "RequireTwoFactorVerifiedDependency requires current_session_dependency"
            )
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireTwoFactorVerifiedDependency requires clock")
        if max_age_ms <= 0:
            raise ValueError("RequireTwoFactorVerifiedDependency requires max_age_ms > 0")
        self._current_session_dependency = current_session_dependency
        self._clock = clock
        self._max_age_ms = max_age_ms

    def __call__(self, request: Request) -> SessionClaims:
        claims = self._current_session_dependency(request)
        now_ms = datetime_to_epoch_ms(value=self._clock.now())
        if not is_two_factor_satisfied(claims, now_ms=now_ms, max_age_ms=self._max_age_ms):
            raise TwoFactorRequiredHttpError(
                message="Two-factor verification is required for this action.",
            )
        return claims

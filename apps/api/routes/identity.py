"""
Identity API routes: session introspection, logout and the TOTP two-factor endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from secyourflow.contexts.identity.adapters.inbound.api.deps import (
    NO_STORE_HEADERS,
    RequireCurrentSessionDependency,
    SessionCookie,
)
from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims
from secyourflow.contexts.identity.application.services import is_two_factor_satisfied
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    datetime_to_epoch_ms,
)


class SessionResponse(BaseModel):
    """
    SessionResponse: second-factor state of the current session for UI routing.
    """

    user_id: str
    totp_enabled: bool
    two_factor_verified: bool
    two_factor_satisfied: bool


def build_identity_router(
    *,
    two_factor_router: APIRouter,
    current_session_dependency: RequireCurrentSessionDependency,
    session_cookie: SessionCookie,
    clock: IdentityClock,
) -> APIRouter:
    """
    Build identity router facade for the FastAPI composition root.

    Args:
        two_factor_router: Router with the `/2fa/totp` endpoints.
        current_session_dependency: Dependency resolving session claims.
        session_cookie: Session cookie helper used by logout.
        clock: UTC time source.
    Returns:
        APIRouter: Configured identity router.
    Raises:
        ValueError: If dependencies are missing.
    Side Effects:
        None.
    """
    if two_factor_router is None:  # type: ignore[truthy-bool]
        raise ValueError("build_identity_router requires two_factor_router")
    if current_session_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_identity_router requires current_session_dependency")
    if session_cookie is None:  # type: ignore[truthy-bool]
        raise ValueError("build_identity_router requires session_cookie")
    if clock is None:  # type: ignore[truthy-bool]
        raise ValueError("build_identity_router requires clock")

    router = APIRouter(tags=["identity"])

    @router.get("/auth/session", response_model=SessionResponse)
    def get_auth_session(
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> SessionResponse:
        response.headers.update(NO_STORE_HEADERS)
        now_ms = datetime_to_epoch_ms(value=clock.now())
        return SessionResponse(
            user_id=str(claims.user_id),
            totp_enabled=claims.totp_enabled,
            two_factor_verified=claims.two_factor_verified,
            two_factor_satisfied=is_two_factor_satisfied(claims, now_ms=now_ms),
        )

    @router.post("/auth/logout", status_code=204)
    def post_auth_logout(response: Response) -> None:
        response.headers.update(NO_STORE_HEADERS)
        session_cookie.clear(response)

    router.include_router(two_factor_router)
    return router

from __future__ import annotations

import logging

from fastapi import HTTPException
from starlette.requests import Request

from secyourflow.contexts.identity.adapters.inbound.api.deps.session_cookie import (
    NO_STORE_HEADERS,
    SessionCookie,
)
from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.session_codec import (
    SessionClaims,
    SessionDecodeError,
)
from secyourflow.contexts.identity.application.services import normalize_session_claims
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    datetime_to_epoch_ms,
)

log = logging.getLogger(__name__)


class RequireCurrentSessionDependency:
    """
    RequireCurrentSessionDependency: FastAPI dependency resolving the signed session claims.

    Related:
      - src/secyourflow/contexts/identity/adapters/inbound/api/deps/session_cookie.py
      - src/secyourflow/contexts/identity/application/services/two_factor_session_policy.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, session_cookie: SessionCookie, clock: IdentityClock) -> None:
        if session_cookie is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireCurrentSessionDependency requires session_cookie")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireCurrentSessionDependency requires clock")
        self._session_cookie = session_cookie
        self._clock = clock

    def __call__(self, request: Request) -> SessionClaims:
        """
        Decode the session cookie and return normalized claims.

        Args:
            request: FastAPI HTTP request.
        Returns:
            SessionClaims: Verified claims; sessions without TOTP come back verified.
        Assumptions:
            Session token is stored in the configured cookie key.
        Raises:
            HTTPException: 401 `unauthorized` when the cookie is missing, forged or expired.
        Side Effects:
            None.
        """
        token = self._session_cookie.read_token(request)
        if token is None:
            raise _unauthorized(message="Authentication required.")
        try:
            claims = self._session_cookie.codec.decode(token=token)
        except SessionDecodeError as error:
            log.info("session cookie rejected: %s", error.code)
            raise _unauthorized(message="Authentication required.") from error
        return normalize_session_claims(
            claims,
            now_ms=datetime_to_epoch_ms(value=self._clock.now()),
        )


def _unauthorized(*, message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={
            "error": "unauthorized",
            "message": message,
        },
        headers=NO_STORE_HEADERS,
    )

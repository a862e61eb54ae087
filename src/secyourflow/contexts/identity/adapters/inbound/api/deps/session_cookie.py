from __future__ import annotations

from datetime import datetime, timedelta
from typing import Literal

from starlette.requests import Request
from starlette.responses import Response

from secyourflow.contexts.identity.application.ports.session_codec import (
    SessionClaims,
    SessionCodec,
)

DEFAULT_SESSION_COOKIE_NAME = "secyourflow_session"
NO_STORE_HEADERS: dict[str, str] = {"Cache-Control": "no-store"}


class SessionCookie:
    """
    SessionCookie: reads, writes and clears the signed identity session cookie.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/security/jwt/hs256_session_codec.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/deps/current_session.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        codec: SessionCodec,
        cookie_name: str = DEFAULT_SESSION_COOKIE_NAME,
        cookie_secure: bool = False,
        cookie_samesite: Literal["lax", "strict", "none"] = "lax",
        cookie_path: str = "/",
    ) -> None:
        """
        Initialize cookie settings and the codec signing session tokens.

        Args:
            codec: Session token codec.
            cookie_name: Cookie key.
            cookie_secure: Cookie secure flag.
            cookie_samesite: Cookie SameSite mode.
            cookie_path: Cookie path.
        Returns:
            None.
        Assumptions:
            The same instance is shared by the session dependency and every writer route.
        Raises:
            ValueError: If codec is missing or cookie name/path are blank.
        Side Effects:
            None.
        """
        if codec is None:  # type: ignore[truthy-bool]
            raise ValueError("SessionCookie requires codec")
        normalized_name = cookie_name.strip()
        normalized_path = cookie_path.strip()
        if not normalized_name:
            raise ValueError("SessionCookie requires non-empty cookie_name")
        if not normalized_path:
            raise ValueError("SessionCookie requires non-empty cookie_path")

        self._codec = codec
        self._cookie_name = normalized_name
        self._cookie_secure = cookie_secure
        self._cookie_samesite = cookie_samesite
        self._cookie_path = normalized_path

    @property
    def codec(self) -> SessionCodec:
        return self._codec

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    def read_token(self, request: Request) -> str | None:
        token = request.cookies.get(self._cookie_name)
        if token is None or not token.strip():
            return None
        return token

    def write(self, response: Response, *, claims: SessionClaims, now: datetime) -> None:
        """
        Encode claims and set them as the session cookie.

        Args:
            response: Outgoing response.
            claims: Claims to persist; `expires_at` bounds the cookie lifetime.
            now: Current UTC datetime used to compute `max_age`.
        Returns:
            None.
        Side Effects:
            Adds a `Set-Cookie` header to the response.
        """
        token = self._codec.encode(claims=claims)
        max_age_seconds = max(0, int((claims.expires_at - now) / timedelta(seconds=1)))
        response.set_cookie(
            key=self._cookie_name,
            value=token,
            max_age=max_age_seconds,
            expires=max_age_seconds,
            path=self._cookie_path,
            secure=self._cookie_secure,
            httponly=True,
            samesite=self._cookie_samesite,
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(key=self._cookie_name, path=self._cookie_path)

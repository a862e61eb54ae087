from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any

from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.session_codec import (
    SessionClaims,
    SessionCodec,
    SessionDecodeError,
)
from secyourflow.shared_kernel.primitives import UserId

_HEADER: dict[str, str] = {
    "alg": "HS256",
    "typ": "JWT",
}


class Hs256SessionCodec(SessionCodec):
    """
    Hs256SessionCodec: HS256 JWT codec for the identity session cookie.

    Payload claims: `sub`, `iat`, `exp` (seconds) and `auth_at`, `tfa`, `tfa_at`, `totp`
    (second-factor state, epoch milliseconds for instants).

    Related:
      - src/secyourflow/contexts/identity/application/ports/session_codec.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/deps/current_session.py
    """

    def __init__(
        self,
        *,
        secret_key: str,
        clock: IdentityClock,
        leeway_seconds: int = 0,
    ) -> None:
        """
        Initialize HS256 codec with signing key and runtime clock.

        Args:
            secret_key: JWT signing key.
            clock: Runtime clock for expiration checks.
            leeway_seconds: Optional expiration leeway.
        Returns:
            None.
        Assumptions:
            Secret key is stable per deployment environment.
        Raises:
            ValueError: If secret key is empty, clock missing, or leeway negative.
        Side Effects:
            None.
        """
        normalized_secret = secret_key.strip()
        if not normalized_secret:
            raise ValueError("Hs256SessionCodec requires non-empty secret_key")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("Hs256SessionCodec requires clock")
        if leeway_seconds < 0:
            raise ValueError("Hs256SessionCodec requires leeway_seconds >= 0")

        self._secret_key = normalized_secret.encode("utf-8")
        self._clock = clock
        self._leeway_seconds = leeway_seconds

    def encode(self, *, claims: SessionClaims) -> str:
        header_segment = _to_b64url_json(payload=_HEADER)
        payload_segment = _to_b64url_json(
            payload={
                "auth_at": claims.authenticated_at_ms,
                "exp": int(claims.expires_at.timestamp()),
                "iat": int(claims.issued_at.timestamp()),
                "sub": str(claims.user_id),
                "tfa": claims.two_factor_verified,
                "tfa_at": claims.two_factor_verified_at_ms,
                "totp": claims.totp_enabled,
            }
        )
        signing_input = f"{header_segment}.{payload_segment}".encode("utf-8")
        signature = hmac.new(self._secret_key, signing_input, hashlib.sha256).digest()
        return f"{header_segment}.{payload_segment}.{_to_b64url_bytes(raw=signature)}"

    def decode(self, *, token: str) -> SessionClaims:
        """
        Verify JWT signature and lifetime, then return typed claims.

        Args:
            token: Compact JWT token.
        Returns:
            SessionClaims: Verified claims.
        Assumptions:
            Token was produced by `encode` with the same key.
        Raises:
            SessionDecodeError: If token format, signature, claims or lifetime are invalid.
        Side Effects:
            None.
        """
        token_value = token.strip()
        if not token_value:
            raise SessionDecodeError(code="missing_token", message="Session token is empty")

        segments = token_value.split(".")
        if len(segments) != 3:
            raise SessionDecodeError(
                code="invalid_token_format",
                message="Session token must contain 3 dot-separated segments",
            )

        header_segment, payload_segment, signature_segment = segments
        header = _from_b64url_json(segment=header_segment)
        if header.get("alg") != "HS256" or header.get("typ") != "JWT":
            raise SessionDecodeError(
                code="invalid_header",
                message="Session token header must contain alg=HS256 and typ=JWT",
            )

        signing_input = f"{header_segment}.{payload_segment}".encode("utf-8")
        expected_signature = hmac.new(self._secret_key, signing_input, hashlib.sha256).digest()
        provided_signature = _from_b64url_bytes(segment=signature_segment)
        if not hmac.compare_digest(expected_signature, provided_signature):
            raise SessionDecodeError(
                code="invalid_signature",
                message="Session token signature verification failed",
            )

        payload = _from_b64url_json(segment=payload_segment)
        claims = _claims_from_payload(payload=payload)

        now_ts = int(self._clock.now().timestamp())
        if int(claims.expires_at.timestamp()) <= now_ts - self._leeway_seconds:
            raise SessionDecodeError(code="expired_token", message="Session token is expired")
        return claims


def _claims_from_payload(*, payload: dict[str, Any]) -> SessionClaims:
    subject = str(payload.get("sub", "")).strip()
    iat_raw = payload.get("iat")
    exp_raw = payload.get("exp")
    auth_at_raw = payload.get("auth_at")
    if not subject or iat_raw is None or exp_raw is None or auth_at_raw is None:
        raise SessionDecodeError(
            code="invalid_claims",
            message="Session token payload must contain sub, iat, exp, and auth_at",
        )

    tfa_raw = payload.get("tfa", False)
    totp_raw = payload.get("totp", False)
    tfa_at_raw = payload.get("tfa_at")
    if not isinstance(tfa_raw, bool) or not isinstance(totp_raw, bool):
        raise SessionDecodeError(
            code="invalid_claims",
            message="Session token flags tfa and totp must be booleans",
        )

    try:
        return SessionClaims(
            user_id=UserId.from_string(subject),
            issued_at=datetime.fromtimestamp(int(iat_raw), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(exp_raw), tz=timezone.utc),
            authenticated_at_ms=int(auth_at_raw),
            totp_enabled=totp_raw,
            two_factor_verified=tfa_raw,
            two_factor_verified_at_ms=None if tfa_at_raw is None else int(tfa_at_raw),
        )
    except (OSError, OverflowError, TypeError, ValueError) as error:
        raise SessionDecodeError(
            code="invalid_claims",
            message="Session token payload claims are malformed",
        ) from error


def _to_b64url_json(*, payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return _to_b64url_bytes(raw=raw)


def _from_b64url_json(*, segment: str) -> dict[str, Any]:
    raw = _from_b64url_bytes(segment=segment)
    try:
        loaded = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise SessionDecodeError(
            code="invalid_token_format",
            message="Session token segment is not valid JSON",
        ) from error
    if not isinstance(loaded, dict):
        raise SessionDecodeError(
            code="invalid_token_format",
            message="Session token JSON segment must be an object",
        )
    return loaded


def _to_b64url_bytes(*, raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _from_b64url_bytes(*, segment: str) -> bytes:
    padding = "=" * ((4 - len(segment) % 4) % 4)
    try:
        return base64.urlsafe_b64decode(f"{segment}{padding}".encode("ascii"))
    except (ValueError, UnicodeEncodeError) as error:
        raise SessionDecodeError(
            code="invalid_token_format",
            message="Session token segment is not valid base64url",
        ) from error

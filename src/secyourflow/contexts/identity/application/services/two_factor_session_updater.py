from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping

from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims
from secyourflow.contexts.identity.application.ports.two_factor_session_update import (
    TrustedTwoFactorSessionUpdate,
    TwoFactorSessionUpdate,
    TwoFactorSessionUpdateSigner,
)
from secyourflow.contexts.identity.application.services.two_factor_session_policy import (
    normalize_session_claims,
)

log = logging.getLogger(__name__)


class TwoFactorSessionUpdater:
    """
    TwoFactorSessionUpdater: session-layer side of the trusted update handshake.

    Only updates accepted by the signer mutate the session; anything else is ignored and
    the claims are returned unchanged.

    Related:
      - src/secyourflow/contexts/identity/application/ports/two_factor_session_update.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, signer: TwoFactorSessionUpdateSigner) -> None:
        if signer is None:  # type: ignore[truthy-bool]
            raise ValueError("TwoFactorSessionUpdater requires signer")
        self._signer = signer

    def apply(
        self,
        *,
        claims: SessionClaims,
        candidate: TrustedTwoFactorSessionUpdate | Mapping[str, Any],
        now_ms: int,
    ) -> SessionClaims:
        """
        Apply a trusted session update to current claims.

        Args:
            claims: Current session claims.
            candidate: Tagged update, typed or in wire form.
            now_ms: Current epoch milliseconds used for claim normalization.
        Returns:
            SessionClaims: Updated claims, or the input claims when the update is untrusted.
        Assumptions:
            The signer validates both tag and payload shape.
        Raises:
            None.
        Side Effects:
            Logs a warning when an untrusted update is dropped.
        """
        if not self._signer.is_trusted(candidate):
            log.warning("ignoring untrusted two-factor session update for user %s", claims.user_id)
            return claims

        update = _extract_update(candidate=candidate)
        updated = replace(claims, two_factor_verified=update.two_factor_verified)
        if update.two_factor_verified_at_ms is not None:
            updated = replace(updated, two_factor_verified_at_ms=update.two_factor_verified_at_ms)
        elif not update.two_factor_verified:
            updated = replace(updated, two_factor_verified_at_ms=None)
        if update.authenticated_at_ms is not None:
            updated = replace(updated, authenticated_at_ms=update.authenticated_at_ms)
        if update.totp_enabled is not None:
            updated = replace(updated, totp_enabled=update.totp_enabled)
        return normalize_session_claims(updated, now_ms=now_ms)


def _extract_update(
    *,
    candidate: TrustedTwoFactorSessionUpdate | Mapping[str, Any],
) -> TwoFactorSessionUpdate:
    if isinstance(candidate, TrustedTwoFactorSessionUpdate):
        return candidate.update
    return TwoFactorSessionUpdate.from_payload(candidate)

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from secyourflow.contexts.identity.adapters.outbound.security.two_factor import (
    HmacTwoFactorSessionUpdateSigner,
)
from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims
from secyourflow.contexts.identity.application.ports.two_factor_session_update import (
    TRUST_TAG_FIELD,
    TwoFactorSessionUpdate,
)
from secyourflow.contexts.identity.application.services import TwoFactorSessionUpdater
from secyourflow.shared_kernel.primitives import UserId

_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
_NOW_MS = int(_NOW.timestamp() * 1000)
_SIGNER = HmacTwoFactorSessionUpdateSigner.from_environ(
    environ={"TWO_FACTOR_SESSION_UPDATE_KEY": "unit-test-session-update-key"}
)


def _pending_totp_claims() -> SessionClaims:
    return SessionClaims(
        user_id=UserId.from_string("00000000-0000-0000-0000-000000000101"),
        issued_at=_NOW - timedelta(hours=1),
        expires_at=_NOW + timedelta(days=1),
        authenticated_at_ms=_NOW_MS - 3_600_000,
        totp_enabled=True,
        two_factor_verified=False,
        two_factor_verified_at_ms=None,
    )


def test_apply_trusted_update_marks_session_verified() -> None:
    """
    Verify a trusted update sets verification flag and instant.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        The same signer is used by the route that builds the update.
    Raises:
        AssertionError: If claims are not updated.
    Side Effects:
        None.
    """
    updater = TwoFactorSessionUpdater(signer=_SIGNER)
    trusted = _SIGNER.build_trusted_update(
        TwoFactorSessionUpdate(
            two_factor_verified=True,
            two_factor_verified_at_ms=_NOW_MS,
            authenticated_at_ms=_NOW_MS,
        )
    )

    updated = updater.apply(claims=_pending_totp_claims(), candidate=trusted, now_ms=_NOW_MS)

    assert updated.two_factor_verified is True
    assert updated.two_factor_verified_at_ms == _NOW_MS
    assert updated.authenticated_at_ms == _NOW_MS
    assert updated.totp_enabled is True


def test_apply_ignores_untrusted_wire_payload() -> None:
    updater = TwoFactorSessionUpdater(signer=_SIGNER)
    claims = _pending_totp_claims()
    forged = {
        "two_factor_verified": True,
        "two_factor_verified_at": _NOW_MS,
        TRUST_TAG_FIELD: "00" * 32,
    }

    assert updater.apply(claims=claims, candidate=forged, now_ms=_NOW_MS) is claims
    assert updater.apply(
        claims=claims,
        candidate={"two_factor_verified": True},
        now_ms=_NOW_MS,
    ) is claims


def test_apply_accepts_trusted_wire_payload() -> None:
    updater = TwoFactorSessionUpdater(signer=_SIGNER)
    payload = _SIGNER.build_trusted_update(
        TwoFactorSessionUpdate(two_factor_verified=True, two_factor_verified_at_ms=_NOW_MS)
    ).to_payload()

    updated = updater.apply(claims=_pending_totp_claims(), candidate=payload, now_ms=_NOW_MS)

    assert updated.two_factor_verified is True


def test_apply_disable_update_clears_verification_and_normalizes() -> None:
    """
    Verify disabling TOTP leaves a session that counts as verified without TOTP.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Sessions without TOTP are normalized to verified at `now_ms`.
    Raises:
        AssertionError: If the disabled session keeps stale TOTP state.
    Side Effects:
        None.
    """
    updater = TwoFactorSessionUpdater(signer=_SIGNER)
    verified_claims = updater.apply(
        claims=_pending_totp_claims(),
        candidate=_SIGNER.build_trusted_update(
            TwoFactorSessionUpdate(two_factor_verified=True, two_factor_verified_at_ms=_NOW_MS - 10)
        ),
        now_ms=_NOW_MS - 10,
    )

    disabled = updater.apply(
        claims=verified_claims,
        candidate=_SIGNER.build_trusted_update(
            TwoFactorSessionUpdate(two_factor_verified=False, totp_enabled=False)
        ),
        now_ms=_NOW_MS,
    )

    assert disabled.totp_enabled is False
    assert disabled.two_factor_verified is True
    assert disabled.two_factor_verified_at_ms == _NOW_MS


def test_updater_requires_signer() -> None:
    with pytest.raises(ValueError):
        TwoFactorSessionUpdater(signer=None)  # type: ignore[arg-type]

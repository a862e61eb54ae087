from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims
from secyourflow.contexts.identity.application.services import (
    RECENT_AUTHENTICATION_WINDOW_MS,
    TWO_FACTOR_REVERIFY_INTERVAL_MS,
    has_recent_two_factor_verification,
    is_recent_authentication,
    is_recent_two_factor_verification,
    is_two_factor_satisfied,
    normalize_session_claims,
)
from secyourflow.shared_kernel.primitives import UserId

_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
_NOW_MS = int(_NOW.timestamp() * 1000)


def _claims(
    *,
    totp_enabled: bool,
    two_factor_verified: bool,
    two_factor_verified_at_ms: int | None,
    authenticated_at_ms: int = _NOW_MS,
) -> SessionClaims:
    return SessionClaims(
        user_id=UserId.from_string("00000000-0000-0000-0000-000000000101"),
        issued_at=_NOW,
        expires_at=_NOW + timedelta(days=1),
        authenticated_at_ms=authenticated_at_ms,
        totp_enabled=totp_enabled,
        two_factor_verified=two_factor_verified,
        two_factor_verified_at_ms=two_factor_verified_at_ms,
    )


def test_reverify_interval_is_twelve_hours_and_inclusive() -> None:
    """
    Verify a verification exactly twelve hours old still counts, one millisecond more does not.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Age comparison is inclusive at the boundary.
    Raises:
        AssertionError: If the boundary moves.
    Side Effects:
        None.
    """
    verified_at = _NOW_MS - TWO_FACTOR_REVERIFY_INTERVAL_MS

    assert TWO_FACTOR_REVERIFY_INTERVAL_MS == 12 * 60 * 60 * 1000
    assert has_recent_two_factor_verification(
        two_factor_verified=True,
        two_factor_verified_at_ms=verified_at,
        now_ms=_NOW_MS,
    )
    assert not has_recent_two_factor_verification(
        two_factor_verified=True,
        two_factor_verified_at_ms=verified_at - 1,
        now_ms=_NOW_MS,
    )


def test_recent_verification_requires_flag_instant_and_past_timestamp() -> None:
    assert not has_recent_two_factor_verification(
        two_factor_verified=False,
        two_factor_verified_at_ms=_NOW_MS,
        now_ms=_NOW_MS,
    )
    assert not has_recent_two_factor_verification(
        two_factor_verified=True,
        two_factor_verified_at_ms=None,
        now_ms=_NOW_MS,
    )
    assert not has_recent_two_factor_verification(
        two_factor_verified=True,
        two_factor_verified_at_ms=_NOW_MS + 1,
        now_ms=_NOW_MS,
    )


def test_is_two_factor_satisfied_passes_sessions_without_totp() -> None:
    """
    Verify users without TOTP are always satisfied and TOTP users need a fresh check.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Missing claims never satisfy the gate.
    Raises:
        AssertionError: If gate decisions differ.
    Side Effects:
        None.
    """
    no_totp = _claims(totp_enabled=False, two_factor_verified=False, two_factor_verified_at_ms=None)
    fresh = _claims(totp_enabled=True, two_factor_verified=True, two_factor_verified_at_ms=_NOW_MS)
    stale = _claims(
        totp_enabled=True,
        two_factor_verified=True,
        two_factor_verified_at_ms=_NOW_MS - TWO_FACTOR_REVERIFY_INTERVAL_MS - 1,
    )
    pending = _claims(totp_enabled=True, two_factor_verified=False, two_factor_verified_at_ms=None)

    assert is_two_factor_satisfied(no_totp, now_ms=_NOW_MS) is True
    assert is_two_factor_satisfied(fresh, now_ms=_NOW_MS) is True
    assert is_two_factor_satisfied(stale, now_ms=_NOW_MS) is False
    assert is_two_factor_satisfied(pending, now_ms=_NOW_MS) is False
    assert is_two_factor_satisfied(None, now_ms=_NOW_MS) is False


def test_recent_two_factor_verification_never_counts_sessions_without_totp() -> None:
    no_totp = _claims(
        totp_enabled=False,
        two_factor_verified=True,
        two_factor_verified_at_ms=_NOW_MS,
    )
    fresh = _claims(
        totp_enabled=True,
        two_factor_verified=True,
        two_factor_verified_at_ms=_NOW_MS - RECENT_AUTHENTICATION_WINDOW_MS,
    )

    assert not is_recent_two_factor_verification(
        no_totp,
        now_ms=_NOW_MS,
        max_age_ms=RECENT_AUTHENTICATION_WINDOW_MS,
    )
    assert is_recent_two_factor_verification(
        fresh,
        now_ms=_NOW_MS,
        max_age_ms=RECENT_AUTHENTICATION_WINDOW_MS,
    )
    assert not is_recent_two_factor_verification(
        fresh,
        now_ms=_NOW_MS + 1,
        max_age_ms=RECENT_AUTHENTICATION_WINDOW_MS,
    )


def test_is_recent_authentication_uses_ten_minute_window() -> None:
    claims = _claims(
        totp_enabled=False,
        two_factor_verified=False,
        two_factor_verified_at_ms=None,
        authenticated_at_ms=_NOW_MS - RECENT_AUTHENTICATION_WINDOW_MS,
    )

    assert RECENT_AUTHENTICATION_WINDOW_MS == 10 * 60 * 1000
    assert is_recent_authentication(claims, now_ms=_NOW_MS) is True
    assert is_recent_authentication(claims, now_ms=_NOW_MS + 1) is False
    assert is_recent_authentication(None, now_ms=_NOW_MS) is False


def test_normalize_session_claims_marks_sessions_without_totp_verified() -> None:
    """
    Verify sessions without TOTP are normalized to verified with a stamped instant.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        An existing instant on an already verified session is kept.
    Raises:
        AssertionError: If normalization differs.
    Side Effects:
        None.
    """
    unverified = _claims(
        totp_enabled=False,
        two_factor_verified=False,
        two_factor_verified_at_ms=None,
    )
    verified = _claims(
        totp_enabled=False,
        two_factor_verified=True,
        two_factor_verified_at_ms=_NOW_MS - 5,
    )

    normalized = normalize_session_claims(unverified, now_ms=_NOW_MS)

    assert normalized.two_factor_verified is True
    assert normalized.two_factor_verified_at_ms == _NOW_MS
    assert normalize_session_claims(verified, now_ms=_NOW_MS) is verified


def test_normalize_session_claims_drops_verified_flag_without_instant_for_totp_users() -> None:
    claims = _claims(totp_enabled=True, two_factor_verified=False, two_factor_verified_at_ms=None)
    inconsistent = replace(claims, two_factor_verified=True)

    assert normalize_session_claims(inconsistent, now_ms=_NOW_MS).two_factor_verified is False
    assert normalize_session_claims(claims, now_ms=_NOW_MS) is claims

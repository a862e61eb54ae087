"""
Session-level second-factor policy.

A session is second-factor satisfied when TOTP is not enabled for the user, or when the
session carries a verification no older than the re-verify interval.
"""

from __future__ import annotations

from dataclasses import replace

from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims

TWO_FACTOR_REVERIFY_INTERVAL_MS = 12 * 60 * 60 * 1000
RECENT_AUTHENTICATION_WINDOW_MS = 10 * 60 * 1000


def has_recent_two_factor_verification(
    *,
    two_factor_verified: bool,
    two_factor_verified_at_ms: int | None,
    now_ms: int,
    max_age_ms: int = TWO_FACTOR_REVERIFY_INTERVAL_MS,
) -> bool:
    """
    Check that a verification happened within `max_age_ms` before `now_ms`.

    Args:
        two_factor_verified: Session verification flag.
        two_factor_verified_at_ms: Verification instant, if any.
        now_ms: Current epoch milliseconds.
        max_age_ms: Inclusive maximum age.
    Returns:
        bool: False for unverified sessions and for instants in the future.
    """
    if not two_factor_verified or two_factor_verified_at_ms is None:
        return False
    age_ms = now_ms - two_factor_verified_at_ms
    return 0 <= age_ms <= max_age_ms


def is_two_factor_satisfied(
    claims: SessionClaims | None,
    *,
    now_ms: int,
    max_age_ms: int = TWO_FACTOR_REVERIFY_INTERVAL_MS,
) -> bool:
    if claims is None:
        return False
    if not claims.totp_enabled:
        return True
    return has_recent_two_factor_verification(
        two_factor_verified=claims.two_factor_verified,
        two_factor_verified_at_ms=claims.two_factor_verified_at_ms,
        now_ms=now_ms,
        max_age_ms=max_age_ms,
    )


def is_recent_two_factor_verification(
    claims: SessionClaims | None,
    *,
    now_ms: int,
    max_age_ms: int,
) -> bool:
    """
    Like `is_two_factor_satisfied`, but sessions without TOTP never count as verified.
    """
    if claims is None or not claims.totp_enabled:
        return False
    return has_recent_two_factor_verification(
        two_factor_verified=claims.two_factor_verified,
        two_factor_verified_at_ms=claims.two_factor_verified_at_ms,
        now_ms=now_ms,
        max_age_ms=max_age_ms,
    )


def is_recent_authentication(
    claims: SessionClaims | None,
    *,
    now_ms: int,
    max_age_ms: int = RECENT_AUTHENTICATION_WINDOW_MS,
) -> bool:
    if claims is None:
        return False
    age_ms = now_ms - claims.authenticated_at_ms
    return 0 <= age_ms <= max_age_ms


def normalize_session_claims(claims: SessionClaims, *, now_ms: int) -> SessionClaims:
    """
    Apply the session defaults for users without TOTP.

    Sessions of users without TOTP are always second-factor verified; a missing
    verification instant is stamped with `now_ms`. Sessions with TOTP keep their flags,
    except that a verified flag without an instant is dropped.
    """
    if not claims.totp_enabled:
        if claims.two_factor_verified and claims.two_factor_verified_at_ms is not None:
            return claims
        return replace(
            claims,
            two_factor_verified=True,
            two_factor_verified_at_ms=(
                claims.two_factor_verified_at_ms
                if claims.two_factor_verified_at_ms is not None
                else now_ms
            ),
        )
    if claims.two_factor_verified and claims.two_factor_verified_at_ms is None:
        return replace(claims, two_factor_verified=False)
    return claims

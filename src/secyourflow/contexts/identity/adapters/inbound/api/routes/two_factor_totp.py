"""
TOTP two-factor HTTP routes.

Every response carries `Cache-Control: no-store`. Code-checking endpoints are rate limited
per user and refresh the session cookie through a trusted session update on success.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from secyourflow.contexts.identity.adapters.inbound.api.deps.current_session import (
    RequireCurrentSessionDependency,
)
from secyourflow.contexts.identity.adapters.inbound.api.deps.session_cookie import (
    NO_STORE_HEADERS,
    SessionCookie,
)
from secyourflow.contexts.identity.application.ports.clock import IdentityClock
from secyourflow.contexts.identity.application.ports.rate_limiter import RateLimiter
from secyourflow.contexts.identity.application.ports.session_codec import SessionClaims
from secyourflow.contexts.identity.application.ports.two_factor_metrics import TwoFactorMetrics
from secyourflow.contexts.identity.application.ports.two_factor_session_update import (
    TwoFactorSessionUpdate,
    TwoFactorSessionUpdateSigner,
)
from secyourflow.contexts.identity.application.services import (
    RECENT_AUTHENTICATION_WINDOW_MS,
    TwoFactorSessionUpdater,
    is_recent_authentication,
    is_recent_two_factor_verification,
)
from secyourflow.contexts.identity.application.use_cases import (
    ChallengeTwoFactorTotpUseCase,
    DisableTwoFactorTotpUseCase,
    EnrollTwoFactorTotpUseCase,
    GetTwoFactorStatusUseCase,
    RegenerateRecoveryCodesUseCase,
    TwoFactorNotEnrolledError,
    TwoFactorOperationError,
    VerifyTwoFactorEnrollmentUseCase,
)
from secyourflow.contexts.identity.application.use_cases.two_factor_common import (
    datetime_to_epoch_ms,
)

log = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_MS = 5 * 60 * 1000
VERIFY_RATE_LIMIT_ATTEMPTS = 6
CHALLENGE_RATE_LIMIT_ATTEMPTS = 8
DISABLE_RATE_LIMIT_ATTEMPTS = 6


class TwoFactorCodeRequest(BaseModel):
    code: str


class TwoFactorEnrollResponse(BaseModel):
    """
    TwoFactorEnrollResponse: pending enrollment material for `POST /2fa/totp/enroll`.

    The secret is returned once so the UI can offer manual entry next to the QR code.
    """

    secret: str
    otpauth_url: str


class TwoFactorVerifyResponse(BaseModel):
    recovery_codes: list[str]


class TwoFactorChallengeResponse(BaseModel):
    success: bool
    two_factor_verified: bool
    used_recovery_code: bool
    recovery_codes_remaining: int


class TwoFactorDisableResponse(BaseModel):
    disabled: bool


class TwoFactorRegenerateResponse(BaseModel):
    recovery_codes: list[str]
    generated_at: datetime


class TwoFactorStatusResponse(BaseModel):
    enabled: bool
    verified_at: datetime | None
    has_pending_enrollment: bool
    recovery_codes_remaining: int


def build_two_factor_totp_router(
    *,
    enroll_use_case: EnrollTwoFactorTotpUseCase,
    verify_use_case: VerifyTwoFactorEnrollmentUseCase,
    challenge_use_case: ChallengeTwoFactorTotpUseCase,
    disable_use_case: DisableTwoFactorTotpUseCase,
    regenerate_use_case: RegenerateRecoveryCodesUseCase,
    status_use_case: GetTwoFactorStatusUseCase,
    current_session_dependency: RequireCurrentSessionDependency,
    session_cookie: SessionCookie,
    session_update_signer: TwoFactorSessionUpdateSigner,
    session_updater: TwoFactorSessionUpdater,
    rate_limiter: RateLimiter,
    metrics: TwoFactorMetrics,
    clock: IdentityClock,
) -> APIRouter:
    """
    Build router exposing the TOTP two-factor endpoints under `/2fa/totp`.

    Args:
        enroll_use_case: Enrollment use-case.
        verify_use_case: Enrollment verification use-case.
        challenge_use_case: Routine challenge use-case.
        disable_use_case: Disable use-case.
        regenerate_use_case: Recovery-code regeneration use-case.
        status_use_case: Status use-case.
        current_session_dependency: Dependency resolving signed session claims.
        session_cookie: Session cookie writer.
        session_update_signer: Signer producing trusted session updates.
        session_updater: Session-layer consumer of trusted updates.
        rate_limiter: Attempt limiter for code-checking endpoints.
        metrics: Attempt counters.
        clock: UTC time source.
    Returns:
        APIRouter: Configured router.
    Assumptions:
        Session dependency answers 401 `unauthorized` for missing or invalid cookies.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    dependencies = {
        "enroll_use_case": enroll_use_case,
        "verify_use_case": verify_use_case,
        "challenge_use_case": challenge_use_case,
        "disable_use_case": disable_use_case,
        "regenerate_use_case": regenerate_use_case,
        "status_use_case": status_use_case,
        "current_session_dependency": current_session_dependency,
        "session_cookie": session_cookie,
        "session_update_signer": session_update_signer,
        "session_updater": session_updater,
        "rate_limiter": rate_limiter,
        "metrics": metrics,
        "clock": clock,
    }
    for name, dependency in dependencies.items():
        if dependency is None:
            raise ValueError(f"build_two_factor_totp_router requires {name}")

    router = APIRouter(prefix="/2fa/totp", tags=["identity"])

    def enforce_rate_limit(*, operation: str, claims: SessionClaims, limit: int) -> str:
        key = f"totp:{operation}:{claims.user_id}"
        decision = rate_limiter.consume(key=key, limit=limit, window_ms=RATE_LIMIT_WINDOW_MS)
        if decision.allowed:
            return key
        metrics.record_rate_limited(operation=operation)
        log.warning("TOTP %s rate limited for user %s", operation, claims.user_id)
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limited",
                "message": "Too many authentication attempts. Please try again later.",
                "retry_after_seconds": decision.retry_after_seconds,
            },
            headers={
                **NO_STORE_HEADERS,
                "Retry-After": str(decision.retry_after_seconds),
            },
        )

    def operation_failed(*, operation: str, error: TwoFactorOperationError) -> HTTPException:
        metrics.record_attempt(operation=operation, outcome=error.code)
        return HTTPException(
            status_code=error.status_code,
            detail=error.payload(),
            headers=NO_STORE_HEADERS,
        )

    def refresh_session(
        *,
        response: Response,
        claims: SessionClaims,
        update: TwoFactorSessionUpdate,
        now: datetime,
    ) -> SessionClaims:
        trusted_update = session_update_signer.build_trusted_update(update)
        updated_claims = session_updater.apply(
            claims=claims,
            candidate=trusted_update,
            now_ms=datetime_to_epoch_ms(value=now),
        )
        session_cookie.write(response, claims=updated_claims, now=now)
        return updated_claims

    def pass_without_totp(
        *,
        response: Response,
        claims: SessionClaims,
        now: datetime,
    ) -> TwoFactorChallengeResponse:
        refresh_session(
            response=response,
            claims=claims,
            update=TwoFactorSessionUpdate(
                two_factor_verified=True,
                two_factor_verified_at_ms=datetime_to_epoch_ms(value=now),
                totp_enabled=False,
            ),
            now=now,
        )
        metrics.record_attempt(operation="challenge", outcome="not_enrolled_pass")
        return TwoFactorChallengeResponse(
            success=True,
            two_factor_verified=True,
            used_recovery_code=False,
            recovery_codes_remaining=0,
        )

    @router.post("/enroll", response_model=TwoFactorEnrollResponse)
    def post_enroll(
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> TwoFactorEnrollResponse:
        """
        Start or restart TOTP enrollment for the session user.

        Args:
            response: Outgoing response used for headers.
            claims: Current session claims.
        Returns:
            TwoFactorEnrollResponse: Plaintext secret and provisioning URI.
        Raises:
            HTTPException: 404/400/409 for unknown user, missing email or active TOTP.
        Side Effects:
            Persists a new sealed secret and resets TOTP verification fields.
        """
        response.headers.update(NO_STORE_HEADERS)
        try:
            result = enroll_use_case.enroll(user_id=claims.user_id)
        except TwoFactorOperationError as error:
            raise operation_failed(operation="enroll", error=error) from error
        metrics.record_attempt(operation="enroll", outcome="success")
        return TwoFactorEnrollResponse(secret=result.secret, otpauth_url=result.otpauth_url)

    @router.post("/verify", response_model=TwoFactorVerifyResponse)
    def post_verify(
        request: TwoFactorCodeRequest,
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> TwoFactorVerifyResponse:
        """
        Confirm the pending enrollment and activate TOTP.

        Args:
            request: Submitted TOTP code.
            response: Outgoing response used for headers and the refreshed cookie.
            claims: Current session claims.
        Returns:
            TwoFactorVerifyResponse: First recovery batch, shown once.
        Raises:
            HTTPException: 429 when rate limited, 4xx for use-case errors.
        Side Effects:
            Activates TOTP, resets the verify bucket and marks the session verified.
        """
        response.headers.update(NO_STORE_HEADERS)
        bucket_key = enforce_rate_limit(
            operation="verify",
            claims=claims,
            limit=VERIFY_RATE_LIMIT_ATTEMPTS,
        )
        now = clock.now()
        try:
            result = verify_use_case.verify(
                user_id=claims.user_id,
                code=request.code,
                now_ms=datetime_to_epoch_ms(value=now),
            )
        except TwoFactorOperationError as error:
            raise operation_failed(operation="verify", error=error) from error

        rate_limiter.reset(key=bucket_key)
        metrics.record_attempt(operation="verify", outcome="success")
        refresh_session(
            response=response,
            claims=claims,
            update=TwoFactorSessionUpdate(
                two_factor_verified=True,
                two_factor_verified_at_ms=datetime_to_epoch_ms(value=now),
                totp_enabled=True,
            ),
            now=now,
        )
        return TwoFactorVerifyResponse(recovery_codes=list(result.recovery_codes))

    @router.post("/challenge", response_model=TwoFactorChallengeResponse)
    def post_challenge(
        request: TwoFactorCodeRequest,
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> TwoFactorChallengeResponse:
        """
        Verify a primary or recovery code and mark the session second-factor verified.

        Args:
            request: Submitted TOTP code or recovery code.
            response: Outgoing response used for headers and the refreshed cookie.
            claims: Current session claims.
        Returns:
            TwoFactorChallengeResponse: Verification marker and recovery-code usage.
        Assumptions:
            Users without active TOTP pass the challenge and get their session flag
            corrected to `totp=false`.
        Raises:
            HTTPException: 429 when rate limited, 4xx for use-case errors.
        Side Effects:
            Advances the replay step or consumes a recovery code; refreshes the session.
        """
        response.headers.update(NO_STORE_HEADERS)
        now = clock.now()
        now_ms = datetime_to_epoch_ms(value=now)
        bucket_key = enforce_rate_limit(
            operation="challenge",
            claims=claims,
            limit=CHALLENGE_RATE_LIMIT_ATTEMPTS,
        )
        try:
            result = challenge_use_case.challenge(
                user_id=claims.user_id,
                code=request.code,
                now_ms=now_ms,
            )
        except TwoFactorNotEnrolledError:
            return pass_without_totp(response=response, claims=claims, now=now)
        except TwoFactorOperationError as error:
            raise operation_failed(operation="challenge", error=error) from error

        rate_limiter.reset(key=bucket_key)
        metrics.record_attempt(
            operation="challenge",
            outcome="recovery_code" if result.used_recovery_code else "success",
        )
        refresh_session(
            response=response,
            claims=claims,
            update=TwoFactorSessionUpdate(
                two_factor_verified=True,
                two_factor_verified_at_ms=now_ms,
                totp_enabled=True,
            ),
            now=now,
        )
        return TwoFactorChallengeResponse(
            success=True,
            two_factor_verified=True,
            used_recovery_code=result.used_recovery_code,
            recovery_codes_remaining=result.recovery_codes_remaining,
        )

    @router.post("/disable", response_model=TwoFactorDisableResponse)
    def post_disable(
        request: TwoFactorCodeRequest,
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> TwoFactorDisableResponse:
        response.headers.update(NO_STORE_HEADERS)
        bucket_key = enforce_rate_limit(
            operation="disable",
            claims=claims,
            limit=DISABLE_RATE_LIMIT_ATTEMPTS,
        )
        now = clock.now()
        try:
            result = disable_use_case.disable(
                user_id=claims.user_id,
                code=request.code,
                now_ms=datetime_to_epoch_ms(value=now),
            )
        except TwoFactorOperationError as error:
            raise operation_failed(operation="disable", error=error) from error

        rate_limiter.reset(key=bucket_key)
        metrics.record_attempt(
            operation="disable",
            outcome="recovery_code" if result.used_recovery_code else "success",
        )
        refresh_session(
            response=response,
            claims=claims,
            update=TwoFactorSessionUpdate(two_factor_verified=False, totp_enabled=False),
            now=now,
        )
        return TwoFactorDisableResponse(disabled=result.disabled)

    @router.post("/recovery/regenerate", response_model=TwoFactorRegenerateResponse)
    def post_regenerate_recovery_codes(
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> TwoFactorRegenerateResponse:
        """
        Replace the recovery batch after a recent authentication or second-factor check.

        Args:
            response: Outgoing response used for headers.
            claims: Current session claims.
        Returns:
            TwoFactorRegenerateResponse: New plaintext batch, shown once.
        Raises:
            HTTPException: 403 `recent_authentication_required` for stale sessions,
                4xx for use-case errors.
        Side Effects:
            Replaces stored recovery hashes.
        """
        response.headers.update(NO_STORE_HEADERS)
        now_ms = datetime_to_epoch_ms(value=clock.now())
        recently_verified = is_recent_two_factor_verification(
            claims,
            now_ms=now_ms,
            max_age_ms=RECENT_AUTHENTICATION_WINDOW_MS,
        )
        recently_authenticated = is_recent_authentication(
            claims,
            now_ms=now_ms,
            max_age_ms=RECENT_AUTHENTICATION_WINDOW_MS,
        )
        if not recently_verified and not recently_authenticated:
            raise HTTPException(
                status_code=403,
                detail={
                    "error": "recent_authentication_required",
                    "message": "Recent authentication is required to regenerate recovery codes.",
                },
                headers=NO_STORE_HEADERS,
            )

        try:
            result = regenerate_use_case.regenerate(user_id=claims.user_id)
        except TwoFactorOperationError as error:
            raise operation_failed(operation="regenerate", error=error) from error
        metrics.record_attempt(operation="regenerate", outcome="success")
        return TwoFactorRegenerateResponse(
            recovery_codes=list(result.recovery_codes),
            generated_at=result.generated_at,
        )

    @router.get("/status", response_model=TwoFactorStatusResponse)
    def get_status(
        response: Response,
        claims: SessionClaims = Depends(current_session_dependency),
    ) -> TwoFactorStatusResponse:
        response.headers.update(NO_STORE_HEADERS)
        try:
            status = status_use_case.get_status(user_id=claims.user_id)
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
                headers=NO_STORE_HEADERS,
            ) from error
        return TwoFactorStatusResponse(
            enabled=status.enabled,
            verified_at=status.verified_at,
            has_pending_enrollment=status.has_pending_enrollment,
            recovery_codes_remaining=status.recovery_codes_remaining,
        )

    return router


"""
Composition helpers for the identity API module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal, Mapping

from fastapi import APIRouter
from prometheus_client import REGISTRY, CollectorRegistry

from apps.api.routes import build_identity_router
from secyourflow.contexts.identity.adapters.inbound.api.deps import (
    DEFAULT_SESSION_COOKIE_NAME,
    RequireCurrentSessionDependency,
    RequireTwoFactorVerifiedDependency,
    SessionCookie,
)
from secyourflow.contexts.identity.adapters.inbound.api.routes import (
    build_two_factor_totp_router,
)
from secyourflow.contexts.identity.adapters.outbound import (
    AesGcmSealedSecretCipher,
    HmacRecoveryCodes,
    HmacTwoFactorSessionUpdateSigner,
    Hs256SessionCodec,
    InMemoryRateLimiter,
    InMemoryTotpUserStore,
    PostgresTotpUserStore,
    PrometheusTwoFactorMetrics,
    PsycopgIdentityPostgresGateway,
    PyOtpTotpProvider,
    RedisRateLimiter,
    SystemIdentityClock,
)
from secyourflow.contexts.identity.application import (
    IdentityClock,
    RateLimiter,
    TotpUserStore,
    TwoFactorSessionUpdater,
)
from secyourflow.contexts.identity.application.use_cases import (
    DEFAULT_TOTP_ISSUER,
    ChallengeTwoFactorTotpUseCase,
    DisableTwoFactorTotpUseCase,
    EnrollTwoFactorTotpUseCase,
    GetTwoFactorStatusUseCase,
    RegenerateRecoveryCodesUseCase,
    VerifyTwoFactorEnrollmentUseCase,
)
from secyourflow.platform.config import SESSION_JWT_KEY_CANDIDATES, find_key_material

log = logging.getLogger(__name__)

_ENV_NAME_KEY = "SECYOURFLOW_ENV"
_IDENTITY_FAIL_FAST_KEY = "IDENTITY_FAIL_FAST"
_IDENTITY_PG_DSN_KEY = "IDENTITY_PG_DSN"
_IDENTITY_RATE_LIMIT_REDIS_URL_KEY = "IDENTITY_RATE_LIMIT_REDIS_URL"
_IDENTITY_COOKIE_NAME_KEY = "IDENTITY_COOKIE_NAME"
_IDENTITY_COOKIE_PATH_KEY = "IDENTITY_COOKIE_PATH"
_IDENTITY_COOKIE_SAMESITE_KEY = "IDENTITY_COOKIE_SAMESITE"
_IDENTITY_COOKIE_SECURE_KEY = "IDENTITY_COOKIE_SECURE"
_TOTP_ISSUER_KEY = "TOTP_ISSUER"
_ALLOWED_ENVS = ("dev", "test", "staging", "prod")
_FAIL_FAST_ENVS = ("staging", "prod")
_ALLOWED_SAMESITE = ("lax", "none", "strict")
_DEV_SESSION_JWT_SECRET = "dev-identity-jwt-secret"


@dataclass(frozen=True, slots=True)
class IdentityRuntimeSettings:
    """
    IdentityRuntimeSettings: resolved runtime policy for identity wiring.

    Related:
      - apps/api/wiring/modules/identity.py
      - apps/api/main/app.py
    """

    env_name: str
    fail_fast: bool
    session_jwt_secret: str
    postgres_dsn: str
    rate_limit_redis_url: str
    totp_issuer: str
    cookie_name: str
    cookie_secure: bool
    cookie_samesite: Literal["lax", "strict", "none"]
    cookie_path: str

    def __post_init__(self) -> None:
        """
        Validate identity runtime settings invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Values are normalized by resolver before dataclass construction.
        Raises:
            ValueError: If one of invariants is violated.
        Side Effects:
            None.
        """
        if self.env_name not in _ALLOWED_ENVS:
            raise ValueError(
                f"IdentityRuntimeSettings.env_name must be one of {_ALLOWED_ENVS}, "
                f"got {self.env_name!r}"
            )
        if not self.session_jwt_secret:
            raise ValueError("IdentityRuntimeSettings.session_jwt_secret must be non-empty")
        if not self.totp_issuer:
            raise ValueError("IdentityRuntimeSettings.totp_issuer must be non-empty")
        if not self.cookie_name:
            raise ValueError("IdentityRuntimeSettings.cookie_name must be non-empty")
        if self.cookie_samesite not in _ALLOWED_SAMESITE:
            raise ValueError(
                "IdentityRuntimeSettings.cookie_samesite must be one of "
                f"{_ALLOWED_SAMESITE}, got {self.cookie_samesite!r}"
            )
        if not self.cookie_path:
            raise ValueError("IdentityRuntimeSettings.cookie_path must be non-empty")


@dataclass(frozen=True, slots=True)
class IdentityApiModule:
    """
    IdentityApiModule: wired identity router plus the objects other modules reuse.

    `store` and `session_cookie` are exposed so tests and sibling modules can seed users
    and mint sessions without rebuilding the graph.
    """

    router: APIRouter
    settings: IdentityRuntimeSettings
    store: TotpUserStore
    session_cookie: SessionCookie
    current_session_dependency: RequireCurrentSessionDependency
    two_factor_verified_dependency: RequireTwoFactorVerifiedDependency


def build_identity_api_module(
    *,
    environ: Mapping[str, str],
    store: TotpUserStore | None = None,
    clock: IdentityClock | None = None,
    rate_limiter: RateLimiter | None = None,
    metrics_registry: CollectorRegistry | None = None,
) -> IdentityApiModule:
    """
    Build the fully wired identity module from environment settings.

    Args:
        environ: Runtime environment mapping.
        store: Optional prebuilt user store (tests/custom wiring).
        clock: Optional clock override (tests).
        rate_limiter: Optional limiter override (tests).
        metrics_registry: Optional Prometheus registry; defaults to the global one.
    Returns:
        IdentityApiModule: Router and shared dependencies.
    Assumptions:
        Fail-fast policy and secrets are resolved by `resolve_identity_runtime_settings`.
    Raises:
        ValueError: If settings are invalid or fail-fast requires a missing DSN.
        KeyMaterialNotConfiguredError: If fail-fast is on and a key chain is empty.
    Side Effects:
        Registers Prometheus counters once per registry.
    """
    settings = resolve_identity_runtime_settings(environ=environ)
    effective_clock = clock if clock is not None else SystemIdentityClock()
    effective_store = store if store is not None else _build_store(settings=settings)
    effective_rate_limiter = (
        rate_limiter if rate_limiter is not None else _build_rate_limiter(settings=settings)
    )

    sealer = AesGcmSealedSecretCipher.for_totp_secrets(environ=environ)
    recovery_codes = HmacRecoveryCodes.from_environ(environ=environ)
    signer = HmacTwoFactorSessionUpdateSigner.from_environ(environ=environ)
    if settings.fail_fast:
        sealer.assert_configured()
        recovery_codes.assert_configured()
        signer.assert_configured()
    totp_provider = PyOtpTotpProvider()

    session_cookie = SessionCookie(
        codec=Hs256SessionCodec(secret_key=settings.session_jwt_secret, clock=effective_clock),
        cookie_name=settings.cookie_name,
        cookie_secure=settings.cookie_secure,
        cookie_samesite=settings.cookie_samesite,
        cookie_path=settings.cookie_path,
    )
    current_session_dependency = RequireCurrentSessionDependency(
        session_cookie=session_cookie,
        clock=effective_clock,
    )
    two_factor_verified_dependency = RequireTwoFactorVerifiedDependency(
        current_session_dependency=current_session_dependency,
        clock=effective_clock,
    )

    code_checking_dependencies: dict[str, Any] = {
        "store": effective_store,
        "sealer": sealer,
        "totp_provider": totp_provider,
        "recovery_codes": recovery_codes,
        "clock": effective_clock,
    }
    two_factor_router = build_two_factor_totp_router(
        enroll_use_case=EnrollTwoFactorTotpUseCase(
            store=effective_store,
            sealer=sealer,
            totp_provider=totp_provider,
            issuer=settings.totp_issuer,
        ),
        verify_use_case=VerifyTwoFactorEnrollmentUseCase(**code_checking_dependencies),
        challenge_use_case=ChallengeTwoFactorTotpUseCase(**code_checking_dependencies),
        disable_use_case=DisableTwoFactorTotpUseCase(**code_checking_dependencies),
        regenerate_use_case=RegenerateRecoveryCodesUseCase(
            store=effective_store,
            recovery_codes=recovery_codes,
            clock=effective_clock,
        ),
        status_use_case=GetTwoFactorStatusUseCase(store=effective_store),
        current_session_dependency=current_session_dependency,
        session_cookie=session_cookie,
        session_update_signer=signer,
        session_updater=TwoFactorSessionUpdater(signer=signer),
        rate_limiter=effective_rate_limiter,
        metrics=_shared_two_factor_metrics(
            metrics_registry if metrics_registry is not None else REGISTRY
        ),
        clock=effective_clock,
    )

    router = build_identity_router(
        two_factor_router=two_factor_router,
        current_session_dependency=current_session_dependency,
        session_cookie=session_cookie,
        clock=effective_clock,
    )
    log.info(
        "identity module wired env=%s store=%s rate_limiter=%s",
        settings.env_name,
        type(effective_store).__name__,
        type(effective_rate_limiter).__name__,
    )
    return IdentityApiModule(
        router=router,
        settings=settings,
        store=effective_store,
        session_cookie=session_cookie,
        current_session_dependency=current_session_dependency,
        two_factor_verified_dependency=two_factor_verified_dependency,
    )


@lru_cache(maxsize=None)
def _shared_two_factor_metrics(registry: CollectorRegistry) -> PrometheusTwoFactorMetrics:
    return PrometheusTwoFactorMetrics(registry=registry)


def _build_store(*, settings: IdentityRuntimeSettings) -> TotpUserStore:
    """
    Build user store adapter based on runtime DSN availability.

    Args:
        settings: Resolved runtime settings.
    Returns:
        TotpUserStore: Postgres or in-memory adapter.
    Assumptions:
        Postgres DSN is optional in dev/test, in-memory fallback is acceptable for local runs.
    Raises:
        ValueError: If Postgres DSN is blank for gateway construction.
    Side Effects:
        None.
    """
    if settings.postgres_dsn:
        gateway = PsycopgIdentityPostgresGateway(dsn=settings.postgres_dsn)
        return PostgresTotpUserStore(gateway=gateway)
    return InMemoryTotpUserStore()


def _build_rate_limiter(*, settings: IdentityRuntimeSettings) -> RateLimiter:
    if settings.rate_limit_redis_url:
        return RedisRateLimiter(redis_url=settings.rate_limit_redis_url)
    return InMemoryRateLimiter()


def resolve_identity_runtime_settings(*, environ: Mapping[str, str]) -> IdentityRuntimeSettings:
    """
    Resolve identity runtime settings with fail-fast policy and defaults.

    Args:
        environ: Runtime environment mapping.
    Returns:
        IdentityRuntimeSettings: Validated normalized settings.
    Assumptions:
        Missing `SECYOURFLOW_ENV` defaults to `dev`.
    Raises:
        ValueError: If env values are invalid or fail-fast policy requires missing values.
    Side Effects:
        None.
    """
    env_name = _resolve_env_name(environ=environ)
    fail_fast = _resolve_fail_fast(environ=environ, env_name=env_name)

    jwt_material = find_key_material(environ=environ, candidates=SESSION_JWT_KEY_CANDIDATES)
    postgres_dsn = environ.get(_IDENTITY_PG_DSN_KEY, "").strip()

    if fail_fast:
        if jwt_material is None:
            raise ValueError(
                f"one of {', '.join(SESSION_JWT_KEY_CANDIDATES)} must be set "
                f"when {_IDENTITY_FAIL_FAST_KEY}=true"
            )
        if not postgres_dsn:
            raise ValueError(
                f"{_IDENTITY_PG_DSN_KEY} must be set when {_IDENTITY_FAIL_FAST_KEY}=true"
            )

    session_jwt_secret = (
        jwt_material.decode("utf-8") if jwt_material is not None else _DEV_SESSION_JWT_SECRET
    )
    if jwt_material is None:
        log.warning("session JWT key is not configured; using the development fallback")

    return IdentityRuntimeSettings(
        env_name=env_name,
        fail_fast=fail_fast,
        session_jwt_secret=session_jwt_secret,
        postgres_dsn=postgres_dsn,
        rate_limit_redis_url=environ.get(_IDENTITY_RATE_LIMIT_REDIS_URL_KEY, "").strip(),
        totp_issuer=environ.get(_TOTP_ISSUER_KEY, "").strip() or DEFAULT_TOTP_ISSUER,
        cookie_name=(
            environ.get(_IDENTITY_COOKIE_NAME_KEY, "").strip() or DEFAULT_SESSION_COOKIE_NAME
        ),
        cookie_secure=_resolve_cookie_secure(environ=environ, env_name=env_name),
        cookie_samesite=_resolve_cookie_samesite(environ=environ),
        cookie_path=environ.get(_IDENTITY_COOKIE_PATH_KEY, "").strip() or "/",
    )


def _resolve_env_name(*, environ: Mapping[str, str]) -> str:
    raw_env_name = environ.get(_ENV_NAME_KEY, "dev").strip().lower() or "dev"
    if raw_env_name not in _ALLOWED_ENVS:
        raise ValueError(
            f"{_ENV_NAME_KEY} must be one of {_ALLOWED_ENVS}, got {raw_env_name!r}"
        )
    return raw_env_name


def _resolve_fail_fast(*, environ: Mapping[str, str], env_name: str) -> bool:
    """
    Resolve fail-fast policy for identity startup validation.

    Args:
        environ: Runtime environment mapping.
        env_name: Normalized environment name.
    Returns:
        bool: Effective fail-fast flag.
    Assumptions:
        Default is enabled for `staging` and `prod`, disabled for `dev` and `test`.
    Raises:
        ValueError: If override value is not parseable as boolean.
    Side Effects:
        None.
    """
    raw_override = environ.get(_IDENTITY_FAIL_FAST_KEY, "").strip()
    if not raw_override:
        return env_name in _FAIL_FAST_ENVS
    return _parse_bool(raw_value=raw_override, key=_IDENTITY_FAIL_FAST_KEY)


def _resolve_cookie_secure(*, environ: Mapping[str, str], env_name: str) -> bool:
    raw_value = environ.get(_IDENTITY_COOKIE_SECURE_KEY, "").strip()
    if not raw_value:
        return env_name in _FAIL_FAST_ENVS
    return _parse_bool(raw_value=raw_value, key=_IDENTITY_COOKIE_SECURE_KEY)


def _resolve_cookie_samesite(*, environ: Mapping[str, str]) -> Literal["lax", "strict", "none"]:
    raw_samesite = environ.get(_IDENTITY_COOKIE_SAMESITE_KEY, "lax").strip().lower() or "lax"
    if raw_samesite not in _ALLOWED_SAMESITE:
        raise ValueError(
            f"{_IDENTITY_COOKIE_SAMESITE_KEY} must be one of {_ALLOWED_SAMESITE}, "
            f"got {raw_samesite!r}"
        )
    return raw_samesite  # type: ignore[return-value]


def _parse_bool(*, raw_value: str, key: str) -> bool:
    normalized = raw_value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(
        f"{key} must be a boolean literal (1/0/true/false/yes/no/on/off), got {raw_value!r}"
    )

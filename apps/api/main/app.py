"""
FastAPI application factory for the SecYourFlow identity API.
"""

from __future__ import annotations

import os
from typing import Mapping

from fastapi import FastAPI
from prometheus_client import CollectorRegistry, make_asgi_app

from apps.api.common import register_api_error_handlers
from apps.api.wiring.modules import build_identity_api_module
from secyourflow.contexts.identity.adapters.inbound.api.deps import (
    register_two_factor_required_exception_handler,
)
from secyourflow.contexts.identity.application import IdentityClock, RateLimiter, TotpUserStore


def create_app(
    *,
    environ: Mapping[str, str] | None = None,
    store: TotpUserStore | None = None,
    clock: IdentityClock | None = None,
    rate_limiter: RateLimiter | None = None,
    metrics_registry: CollectorRegistry | None = None,
) -> FastAPI:
    """
    Build FastAPI app with the identity module wired at startup.

    Args:
        environ: Optional environment mapping override.
        store: Optional user store override (tests).
        clock: Optional clock override (tests).
        rate_limiter: Optional rate limiter override (tests).
        metrics_registry: Optional Prometheus registry exposed on `/metrics`.
    Returns:
        FastAPI: Application instance with registered routers and handlers.
    Assumptions:
        Module wiring performs fail-fast validation before first request.
    Raises:
        ValueError: If identity settings are invalid.
        KeyMaterialNotConfiguredError: If fail-fast is on and a key chain is empty.
    Side Effects:
        Registers Prometheus counters in the selected registry.
    """
    effective_environ = os.environ if environ is None else environ

    app = FastAPI(
        title="SecYourFlow Identity API",
        version="1.0.0",
    )
    register_api_error_handlers(app=app)
    register_two_factor_required_exception_handler(app=app)
    identity_module = build_identity_api_module(
        environ=effective_environ,
        store=store,
        clock=clock,
        rate_limiter=rate_limiter,
        metrics_registry=metrics_registry,
    )
    app.state.identity_module = identity_module
    app.include_router(identity_module.router)
    if metrics_registry is None:
        app.mount("/metrics", make_asgi_app())
    else:
        app.mount("/metrics", make_asgi_app(registry=metrics_registry))
    return app


app = create_app()

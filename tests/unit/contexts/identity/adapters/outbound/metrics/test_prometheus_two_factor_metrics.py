from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from secyourflow.contexts.identity.adapters.outbound.metrics import (
    NoopTwoFactorMetrics,
    PrometheusTwoFactorMetrics,
)


def test_counters_are_labelled_by_operation_and_outcome() -> None:
    registry = CollectorRegistry()
    metrics = PrometheusTwoFactorMetrics(registry=registry)

    metrics.record_attempt(operation="challenge", outcome="success")
    metrics.record_attempt(operation="challenge", outcome="success")
    metrics.record_attempt(operation="verify", outcome="invalid_code")
    metrics.record_rate_limited(operation="disable")

    assert registry.get_sample_value(
        "secyourflow_two_factor_attempts_total",
        {"operation": "challenge", "outcome": "success"},
    ) == 2.0
    assert registry.get_sample_value(
        "secyourflow_two_factor_attempts_total",
        {"operation": "verify", "outcome": "invalid_code"},
    ) == 1.0
    assert registry.get_sample_value(
        "secyourflow_two_factor_rate_limited_total",
        {"operation": "disable"},
    ) == 1.0


def test_second_registration_in_same_registry_fails() -> None:
    registry = CollectorRegistry()
    PrometheusTwoFactorMetrics(registry=registry)

    with pytest.raises(ValueError):
        PrometheusTwoFactorMetrics(registry=registry)


def test_noop_metrics_accept_calls() -> None:
    metrics = NoopTwoFactorMetrics()

    assert metrics.record_attempt(operation="verify", outcome="success") is None
    assert metrics.record_rate_limited(operation="verify") is None

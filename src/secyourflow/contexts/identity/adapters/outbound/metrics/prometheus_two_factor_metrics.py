from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter

from secyourflow.contexts.identity.application.ports.two_factor_metrics import TwoFactorMetrics


class PrometheusTwoFactorMetrics(TwoFactorMetrics):
    """
    PrometheusTwoFactorMetrics: Prometheus counters for second-factor HTTP operations.

    Related:
      - src/secyourflow/contexts/identity/application/ports/two_factor_metrics.py
      - src/secyourflow/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        """
        Create counter objects.

        Args:
            registry: Optional explicit Prometheus registry (tests can pass isolated one).
        Returns:
            None.
        Assumptions:
            Metrics are instantiated once per registry.
        Raises:
            ValueError: If counters are already registered in the same registry.
        Side Effects:
            Registers metrics in the default Prometheus registry when none is passed.
        """
        effective_registry = registry if registry is not None else REGISTRY

        self.attempts_total = Counter(
            "secyourflow_two_factor_attempts_total",
            "Second-factor attempts grouped by operation and outcome",
            labelnames=("operation", "outcome"),
            registry=effective_registry,
        )
        self.rate_limited_total = Counter(
            "secyourflow_two_factor_rate_limited_total",
            "Second-factor attempts rejected by rate limiting",
            labelnames=("operation",),
            registry=effective_registry,
        )

    def record_attempt(self, *, operation: str, outcome: str) -> None:
        self.attempts_total.labels(operation=operation, outcome=outcome).inc()

    def record_rate_limited(self, *, operation: str) -> None:
        self.rate_limited_total.labels(operation=operation).inc()


class NoopTwoFactorMetrics(TwoFactorMetrics):
    def record_attempt(self, *, operation: str, outcome: str) -> None:
        return None

    def record_rate_limited(self, *, operation: str) -> None:
        return None

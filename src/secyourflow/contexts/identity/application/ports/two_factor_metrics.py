from __future__ import annotations

from typing import Protocol


class TwoFactorMetrics(Protocol):
    """
    TwoFactorMetrics: counters for second-factor attempts and rate-limit rejections.

    Related:
      - src/secyourflow/contexts/identity/adapters/outbound/metrics/prometheus_two_factor_metrics.py
    """

    def record_attempt(self, *, operation: str, outcome: str) -> None:
        ...

    def record_rate_limited(self, *, operation: str) -> None:
        ...

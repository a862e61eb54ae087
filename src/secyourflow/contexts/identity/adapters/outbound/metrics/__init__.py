from .prometheus_two_factor_metrics import NoopTwoFactorMetrics, PrometheusTwoFactorMetrics

__all__ = [
    "NoopTwoFactorMetrics",
    "PrometheusTwoFactorMetrics",
]

"""Energy and financial metrics."""

from .metrics import (
    FinancialResult,
    Improvements,
    MetricsSnapshot,
    baseline_metrics,
    compute_financials,
    compute_improvements,
    simulated_metrics,
)

__all__ = [
    "FinancialResult",
    "Improvements",
    "MetricsSnapshot",
    "baseline_metrics",
    "compute_financials",
    "compute_improvements",
    "simulated_metrics",
]

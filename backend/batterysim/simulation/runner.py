"""Simulation orchestrator for the solar + battery metering model.

``SimulationRunner`` wires the dispatch simulator, the energy metrics and the
tiered tariff into one end-to-end run: baseline metrics from the metered
data, battery dispatch, metrics after the battery, improvements, and the cost
of both scenarios.  Each run is a pure function of the input records and the
config; the runner keeps no state between runs, so separate runs can be
executed in parallel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Optional, Sequence

from batterysim.battery.config import BatteryConfig
from batterysim.dispatch.simulator import simulate_dispatch
from batterysim.economics.metrics import (
    FinancialResult,
    Improvements,
    MetricsSnapshot,
    baseline_metrics,
    compute_financials,
    compute_improvements,
    simulated_metrics,
)
from batterysim.timeseries.aggregation import MonthlyBucketing
from batterysim.timeseries.records import (
    IntervalRecord,
    SimulatedIntervalRecord,
    validate_records,
)

logger = logging.getLogger(__name__)

BILLING_PERIODS: tuple[str, ...] = ("continuous", "monthly")


@dataclass(frozen=True)
class SimulationResult:
    """Everything one run produces."""

    records: list[SimulatedIntervalRecord]
    before: MetricsSnapshot
    after: MetricsSnapshot
    improvements: Improvements
    financials: FinancialResult

    def summary(self) -> dict[str, Any]:
        """Scalar results without the per-interval records."""
        return {
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "improvements": self.improvements.to_dict(),
            "financials": {
                "baseline_cost": self.financials.baseline_cost,
                "battery_cost": self.financials.battery_cost,
                "total_savings": self.financials.total_savings,
                "savings_percent": self.financials.savings_percent,
                "currency": self.financials.currency,
            },
        }


def _billing_period_keys(
    records: Sequence[IntervalRecord], billing_period: str
) -> Optional[list[Hashable]]:
    if billing_period == "continuous":
        return None
    slotter = MonthlyBucketing()
    return [slotter.key(r.timestamp) for r in records]


class SimulationRunner:
    """Runs one battery configuration over interval records.

    Parameters
    ----------
    config : BatteryConfig
        Battery, inverter and pricing parameters.
    billing_period : str
        ``"continuous"`` (default) prices the whole window as one billing
        cycle: cumulative tier-1 import is never reset.  ``"monthly"``
        restarts it at each calendar month.
    """

    def __init__(
        self,
        config: BatteryConfig,
        billing_period: str = "continuous",
    ) -> None:
        if billing_period not in BILLING_PERIODS:
            raise ValueError(
                f"billing_period must be one of {BILLING_PERIODS}, got {billing_period!r}"
            )
        self.config = config
        self.billing_period = billing_period

    def run(self, records: Iterable[IntervalRecord]) -> SimulationResult:
        """Simulate the battery over *records* and compute all metrics."""
        config = self.config
        dt = config.interval_hours
        data = validate_records(records, dt)

        logger.info(
            "Running battery simulation: %d intervals, %.2f kWh, %s mode, %s",
            len(data),
            config.capacity_kwh,
            config.inverter_mode.value,
            config.currency,
        )

        before = baseline_metrics(data, dt)
        simulated = simulate_dispatch(data, config)
        after = simulated_metrics(simulated, before, dt)
        improvements = compute_improvements(before, after)
        financials = compute_financials(
            simulated,
            config.tier,
            config.currency,
            _billing_period_keys(simulated, self.billing_period),
        )

        logger.info(
            "Simulation complete: import -%.2f kWh, savings %.2f %s (%.1f%%)",
            improvements.grid_import_reduction,
            financials.total_savings,
            financials.currency,
            financials.savings_percent,
        )

        return SimulationResult(
            records=simulated,
            before=before,
            after=after,
            improvements=improvements,
            financials=financials,
        )


def run_simulation(
    records: Iterable[IntervalRecord],
    config: BatteryConfig,
    billing_period: str = "continuous",
) -> SimulationResult:
    """Convenience wrapper around :class:`SimulationRunner`."""
    return SimulationRunner(config, billing_period).run(records)

"""Energy and financial metrics for baseline and battery scenarios.

Reduces an interval series to aggregate energy totals and self-consumption,
compares the baseline (no battery) against the simulated series, and prices
both with the tiered tariff.

All energy values are in kWh; rates and percentages are in percent.  Every
ratio whose denominator is not strictly positive resolves to 0.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Hashable, Optional, Sequence

import numpy as np

from batterysim.grid.tariff import CostBreakdown, PricingTier, TieredTariff
from batterysim.timeseries.records import (
    INTERVAL_HOURS,
    IntervalRecord,
    SimulatedIntervalRecord,
)

logger = logging.getLogger(__name__)


# ======================================================================
# Result types
# ======================================================================

@dataclass(frozen=True)
class MetricsSnapshot:
    """Aggregate energy totals for one scenario."""

    solar_production: float = 0.0
    grid_import: float = 0.0
    grid_export: float = 0.0
    solar_self_consumption: float = 0.0
    self_consumption_rate: float = 0.0
    battery_self_consumption: float = 0.0
    battery_losses: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Improvements:
    """Baseline-vs-battery deltas.  ``*_percent`` of a reduction is relative
    to the baseline flow; ``self_consumption_improvement_percent`` is a
    percentage-point difference of the two rates."""

    grid_import_reduction: float = 0.0
    grid_import_reduction_percent: float = 0.0
    grid_export_reduction: float = 0.0
    grid_export_reduction_percent: float = 0.0
    self_consumption_improvement: float = 0.0
    self_consumption_improvement_percent: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class FinancialResult:
    """Cost of the baseline and battery scenarios under one tariff."""

    baseline_cost: float
    battery_cost: float
    total_savings: float
    savings_percent: float
    currency: str
    baseline_breakdown: Optional[CostBreakdown] = None
    battery_breakdown: Optional[CostBreakdown] = None


# ======================================================================
# Internal helpers
# ======================================================================

def _ratio_percent(numerator: float, denominator: float) -> float:
    """``numerator / denominator * 100``, or 0 unless the denominator is > 0."""
    if denominator > 0:
        return numerator / denominator * 100.0
    return 0.0


def _total(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.sum(np.asarray(values, dtype=np.float64)))


def _production_kwh(records: Sequence[IntervalRecord], dt_hours: float) -> float:
    return _total([r.production_kw * dt_hours for r in records])


# ======================================================================
# Energy metrics
# ======================================================================

def baseline_metrics(
    records: Sequence[IntervalRecord],
    dt_hours: float = INTERVAL_HOURS,
) -> MetricsSnapshot:
    """Energy totals for the metered data without a battery.

    ``battery_self_consumption`` and ``battery_losses`` are 0 by definition.
    """
    solar = _production_kwh(records, dt_hours)
    grid_import = _total([r.import_kwh for r in records])
    grid_export = _total([r.export_kwh for r in records])

    # Self-consumption = solar produced that wasn't exported
    self_consumption = solar - grid_export

    return MetricsSnapshot(
        solar_production=solar,
        grid_import=grid_import,
        grid_export=grid_export,
        solar_self_consumption=self_consumption,
        self_consumption_rate=_ratio_percent(self_consumption, solar),
        battery_self_consumption=0.0,
        battery_losses=0.0,
    )


def simulated_metrics(
    records: Sequence[SimulatedIntervalRecord],
    baseline: MetricsSnapshot,
    dt_hours: float = INTERVAL_HOURS,
) -> MetricsSnapshot:
    """Energy totals for the simulated series, relative to *baseline*.

    ``battery_self_consumption`` is the extra self-consumption the battery
    makes possible.  Under correct dispatch it is never negative.
    """
    solar = _production_kwh(records, dt_hours)
    grid_import = _total([r.grid_import_with_battery for r in records])
    grid_export = _total([r.grid_export_with_battery for r in records])
    losses = _total([r.battery_loss_kw * dt_hours for r in records])

    self_consumption = solar - grid_export
    battery_self_consumption = self_consumption - baseline.solar_self_consumption

    if battery_self_consumption < -1e-9:
        logger.warning(
            "Battery reduced self-consumption by %.6f kWh; dispatch is inconsistent",
            -battery_self_consumption,
        )

    return MetricsSnapshot(
        solar_production=solar,
        grid_import=grid_import,
        grid_export=grid_export,
        solar_self_consumption=self_consumption,
        self_consumption_rate=_ratio_percent(self_consumption, solar),
        battery_self_consumption=battery_self_consumption,
        battery_losses=losses,
    )


def compute_improvements(before: MetricsSnapshot, after: MetricsSnapshot) -> Improvements:
    """Difference between the baseline and battery scenarios."""
    import_reduction = before.grid_import - after.grid_import
    export_reduction = before.grid_export - after.grid_export

    return Improvements(
        grid_import_reduction=import_reduction,
        grid_import_reduction_percent=_ratio_percent(import_reduction, before.grid_import),
        grid_export_reduction=export_reduction,
        grid_export_reduction_percent=_ratio_percent(export_reduction, before.grid_export),
        self_consumption_improvement=(
            after.solar_self_consumption - before.solar_self_consumption
        ),
        self_consumption_improvement_percent=(
            after.self_consumption_rate - before.self_consumption_rate
        ),
    )


# ======================================================================
# Financial metrics
# ======================================================================

def compute_financials(
    records: Sequence[SimulatedIntervalRecord],
    tier: PricingTier,
    currency: str,
    period_keys: Optional[Sequence[Hashable]] = None,
) -> FinancialResult:
    """Price the baseline and battery flows of *records* under *tier*.

    The tariff is applied twice over the same interval order: once to the
    metered import / export and once to the flows left after the battery.
    """
    tariff = TieredTariff(tier)

    baseline = tariff.breakdown(
        [r.import_kwh for r in records],
        [r.export_kwh for r in records],
        period_keys,
    )
    battery = tariff.breakdown(
        [r.grid_import_with_battery for r in records],
        [r.grid_export_with_battery for r in records],
        period_keys,
    )

    savings = baseline.total_cost - battery.total_cost

    return FinancialResult(
        baseline_cost=baseline.total_cost,
        battery_cost=battery.total_cost,
        total_savings=savings,
        savings_percent=_ratio_percent(savings, baseline.total_cost),
        currency=currency,
        baseline_breakdown=baseline,
        battery_breakdown=battery,
    )

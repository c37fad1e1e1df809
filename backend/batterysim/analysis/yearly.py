"""Calendar-year self-consumption analysis with a monthly breakdown.

Runs one battery configuration over a complete calendar year of interval
data and reports, per month and for the year, self-consumption with and
without the battery, the resulting grid-export reduction, and the cost of
both scenarios.  Monthly costs are the yearly costs apportioned by the
month's share of data points: the tiered tariff is not additive by month.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from batterysim.battery.config import BatteryConfig
from batterysim.economics.metrics import FinancialResult
from batterysim.simulation.runner import SimulationRunner
from batterysim.timeseries.aggregation import aggregate
from batterysim.timeseries.records import (
    INTERVAL_HOURS,
    IntervalRecord,
    SimulatedIntervalRecord,
)

logger = logging.getLogger(__name__)

# Thresholds for a usable year at 15-minute cadence (35,040 intervals/year).
MIN_POINTS_PER_YEAR: int = 35_000
MIN_PRODUCING_POINTS: int = 8_000
MIN_GRID_ACTIVE_POINTS: int = 30_000
MAX_SUSPICIOUS_PERCENT: float = 5.0
EDGE_TOLERANCE = timedelta(days=1)


# ======================================================================
# Year detection
# ======================================================================

@dataclass
class _YearCoverage:
    min_date: datetime
    max_date: datetime
    points: int = 0
    producing: int = 0
    grid_active: int = 0
    suspicious: int = 0  # production with no grid flow at all


def complete_years(
    records: Sequence[IntervalRecord],
    dt_hours: float = INTERVAL_HOURS,
) -> list[int]:
    """Years with full Jan 1 -- Dec 31 coverage of both solar and grid data.

    A year qualifies when its data starts and ends within a day of the
    calendar year edges, has enough points overall, enough points with solar
    production and with grid activity, and fewer than 5 % of points showing
    production without any grid flow (a sign of missing grid data).  Point
    thresholds scale with the interval length.  Newest year first.
    """
    scale = INTERVAL_HOURS / dt_hours
    coverage: dict[int, _YearCoverage] = {}

    for rec in records:
        ts = rec.timestamp
        cov = coverage.get(ts.year)
        if cov is None:
            cov = coverage[ts.year] = _YearCoverage(min_date=ts, max_date=ts)
        cov.min_date = min(cov.min_date, ts)
        cov.max_date = max(cov.max_date, ts)
        cov.points += 1
        if rec.production_kw > 0:
            cov.producing += 1
        if rec.import_kwh > 0 or rec.export_kwh > 0:
            cov.grid_active += 1
        elif rec.production_kw > 0:
            cov.suspicious += 1

    years: list[int] = []
    for year, cov in coverage.items():
        tz = cov.min_date.tzinfo
        year_start = datetime(year, 1, 1, tzinfo=tz)
        year_end = datetime(year, 12, 31, tzinfo=tz)
        suspicious_pct = cov.suspicious / cov.points * 100.0

        logger.debug(
            "Year %d: points=%d producing=%d grid_active=%d suspicious=%d (%.1f%%)",
            year, cov.points, cov.producing, cov.grid_active, cov.suspicious,
            suspicious_pct,
        )

        if (
            cov.min_date - year_start <= EDGE_TOLERANCE
            and year_end - cov.max_date <= EDGE_TOLERANCE
            and cov.points >= MIN_POINTS_PER_YEAR * scale
            and cov.producing >= MIN_PRODUCING_POINTS * scale
            and cov.grid_active >= MIN_GRID_ACTIVE_POINTS * scale
            and suspicious_pct < MAX_SUSPICIOUS_PERCENT
        ):
            years.append(year)

    return sorted(years, reverse=True)


def filter_year(records: Sequence[IntervalRecord], year: int) -> list[IntervalRecord]:
    """Records whose timestamp falls in calendar *year*."""
    return [r for r in records if r.timestamp.year == year]


# ======================================================================
# Results
# ======================================================================

@dataclass(frozen=True)
class MonthlyResult:
    month_index: int  # 0 = January
    month: str
    data_points: int
    solar_production: float
    grid_import_original: float
    grid_import_optimized: float
    grid_export_original: float
    grid_export_optimized: float
    self_consumption_before: float
    self_consumption_after: float
    grid_export_reduction: float
    self_consumption_before_pct: float
    self_consumption_after_pct: float
    grid_export_reduction_pct: float
    baseline_cost: float
    battery_cost: float
    savings: float
    savings_pct: float


@dataclass(frozen=True)
class YearlyTotals:
    year: int
    battery_capacity_kwh: float
    currency: str
    solar_production: float
    self_consumption_before: float
    self_consumption_after: float
    grid_export_reduction: float
    baseline_cost: float
    battery_cost: float
    savings: float
    self_consumption_before_pct: float
    self_consumption_after_pct: float
    grid_export_reduction_pct: float
    savings_pct: float
    monthly_results: list[MonthlyResult] = field(default_factory=list)


def _pct(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100.0 if denominator > 0 else 0.0


# ======================================================================
# Main entry point
# ======================================================================

def _monthly_results(
    year_data: Sequence[IntervalRecord],
    simulated: Sequence[SimulatedIntervalRecord],
    financials: FinancialResult,
    dt_hours: float,
) -> list[MonthlyResult]:
    original = aggregate(
        year_data, "monthly", {"sum": ["production_kw", "import_kwh", "export_kwh"]}
    )
    optimized = aggregate(
        simulated,
        "monthly",
        {"sum": ["grid_import_with_battery", "grid_export_with_battery"]},
    )
    points = [0] * 12
    for rec in year_data:
        points[rec.timestamp.month - 1] += 1

    by_month_original = {row["timestamp"].month - 1: row for row in original}
    by_month_optimized = {row["timestamp"].month - 1: row for row in optimized}
    total_points = len(year_data)

    results: list[MonthlyResult] = []
    for m in range(12):
        orig = by_month_original.get(m, {})
        opt = by_month_optimized.get(m, {})

        solar = orig.get("production_kw", 0.0) * dt_hours
        export_original = orig.get("export_kwh", 0.0)
        export_optimized = opt.get("grid_export_with_battery", 0.0)

        sc_before = solar - export_original
        sc_after = solar - export_optimized
        export_reduction = export_original - export_optimized

        if total_points > 0:
            fraction = points[m] / total_points
            baseline_cost = financials.baseline_cost * fraction
            battery_cost = financials.battery_cost * fraction
        else:
            baseline_cost = battery_cost = 0.0
        savings = baseline_cost - battery_cost

        results.append(
            MonthlyResult(
                month_index=m,
                month=calendar.month_abbr[m + 1],
                data_points=points[m],
                solar_production=solar,
                grid_import_original=orig.get("import_kwh", 0.0),
                grid_import_optimized=opt.get("grid_import_with_battery", 0.0),
                grid_export_original=export_original,
                grid_export_optimized=export_optimized,
                self_consumption_before=sc_before,
                self_consumption_after=sc_after,
                grid_export_reduction=export_reduction,
                self_consumption_before_pct=_pct(sc_before, solar),
                self_consumption_after_pct=_pct(sc_after, solar),
                grid_export_reduction_pct=_pct(export_reduction, export_original),
                baseline_cost=baseline_cost,
                battery_cost=battery_cost,
                savings=savings,
                savings_pct=_pct(savings, baseline_cost),
            )
        )
    return results


def run_yearly_analysis(
    records: Sequence[IntervalRecord],
    year: int,
    config: BatteryConfig,
    billing_period: str = "continuous",
) -> YearlyTotals:
    """Simulate *config* over calendar *year* and break the result down by month.

    Raises ``ValueError`` if there is no data for *year*.
    """
    year_data = filter_year(records, year)
    if not year_data:
        raise ValueError(f"No data available for year {year}")

    result = SimulationRunner(config, billing_period).run(year_data)
    monthly = _monthly_results(
        year_data, result.records, result.financials, config.interval_hours
    )

    solar = sum(m.solar_production for m in monthly)
    sc_before = sum(m.self_consumption_before for m in monthly)
    sc_after = sum(m.self_consumption_after for m in monthly)
    export_reduction = sum(m.grid_export_reduction for m in monthly)
    baseline_cost = sum(m.baseline_cost for m in monthly)
    battery_cost = sum(m.battery_cost for m in monthly)
    savings = sum(m.savings for m in monthly)

    # Denominator is self-consumption before plus the export reduction.
    export_base = sc_before + export_reduction
    export_reduction_pct = (
        _pct(export_reduction, export_base) if export_reduction > 0 else 0.0
    )

    return YearlyTotals(
        year=year,
        battery_capacity_kwh=config.capacity_kwh,
        currency=config.currency,
        solar_production=solar,
        self_consumption_before=sc_before,
        self_consumption_after=sc_after,
        grid_export_reduction=export_reduction,
        baseline_cost=baseline_cost,
        battery_cost=battery_cost,
        savings=savings,
        self_consumption_before_pct=_pct(sc_before, solar),
        self_consumption_after_pct=_pct(sc_after, solar),
        grid_export_reduction_pct=export_reduction_pct,
        savings_pct=_pct(savings, baseline_cost),
        monthly_results=monthly,
    )

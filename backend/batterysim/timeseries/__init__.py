"""Interval records and calendar aggregation."""

from .records import (
    INTERVAL_HOURS,
    INTERVAL_MINUTES,
    IntervalRecord,
    SimulatedIntervalRecord,
    validate_records,
)
from .aggregation import (
    DailyBucketing,
    MonthlyBucketing,
    TimeBucketing,
    aggregate,
    energy_view,
)

__all__ = [
    "INTERVAL_HOURS",
    "INTERVAL_MINUTES",
    "IntervalRecord",
    "SimulatedIntervalRecord",
    "validate_records",
    "DailyBucketing",
    "MonthlyBucketing",
    "TimeBucketing",
    "aggregate",
    "energy_view",
]

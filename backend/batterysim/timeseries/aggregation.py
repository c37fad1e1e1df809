"""Roll fixed-width interval records up to daily or monthly buckets.

Energy flows are additive across time and are summed; state quantities (SOC,
percentages) are not and are averaged.  A field missing from a record counts
as 0 in both cases, and an average always divides by the number of records
in the bucket.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import fields as dataclass_fields, is_dataclass
from datetime import datetime
from numbers import Real
from typing import Any, Iterable, Mapping, Optional, Sequence

from batterysim.timeseries.records import INTERVAL_HOURS, to_epoch_ms

ENERGY_SUM_FIELDS: tuple[str, ...] = (
    "import_kwh",
    "export_kwh",
    "production_kwh",
    "grid_import_with_battery",
    "grid_export_with_battery",
)
STATE_AVERAGE_FIELDS: tuple[str, ...] = ("battery_soc_percent", "battery_soc_kwh")


# ======================================================================
# Bucketing
# ======================================================================

class TimeBucketing(ABC):
    """Maps a timestamp to the calendar bucket that contains it.

    Buckets are identified by local calendar fields, not by instants: across
    a DST change the same day or month carries two UTC offsets but is still
    one bucket.
    """

    name: str = ""

    @abstractmethod
    def key(self, dt: datetime) -> tuple[int, ...]:
        """Local calendar fields identifying the bucket of *dt*."""

    @abstractmethod
    def time_slot(self, dt: datetime) -> datetime:
        """Start of the bucket containing *dt*, in *dt*'s own time zone."""


class DailyBucketing(TimeBucketing):
    """Calendar days."""

    name = "daily"

    def key(self, dt: datetime) -> tuple[int, ...]:
        return (dt.year, dt.month, dt.day)

    def time_slot(self, dt: datetime) -> datetime:
        return dt.replace(hour=0, minute=0, second=0, microsecond=0)


class MonthlyBucketing(TimeBucketing):
    """Calendar months."""

    name = "monthly"

    def key(self, dt: datetime) -> tuple[int, ...]:
        return (dt.year, dt.month)

    def time_slot(self, dt: datetime) -> datetime:
        return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


BUCKETINGS: dict[str, TimeBucketing] = {
    "daily": DailyBucketing(),
    "monthly": MonthlyBucketing(),
}


def get_bucketing(bucketing: str | TimeBucketing) -> TimeBucketing:
    if isinstance(bucketing, TimeBucketing):
        return bucketing
    try:
        return BUCKETINGS[bucketing]
    except KeyError:
        raise ValueError(
            f"Unknown bucketing {bucketing!r}; expected one of {sorted(BUCKETINGS)}"
        ) from None


# ======================================================================
# Field access
# ======================================================================

def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _numeric(record: Any, name: str, ts: datetime) -> Optional[float]:
    value = _field(record, name)
    if value is None:
        return None
    if not isinstance(value, Real):
        raise ValueError(
            f"Field {name!r} of the record at {ts.isoformat()} is not numeric: {value!r}"
        )
    return value


def _as_mapping(record: Any) -> dict[str, Any]:
    if isinstance(record, Mapping):
        return dict(record)
    if is_dataclass(record):
        return {f.name: getattr(record, f.name) for f in dataclass_fields(record)}
    return dict(vars(record))


# ======================================================================
# Aggregation
# ======================================================================

def aggregate(
    records: Iterable[Any],
    bucketing: str | TimeBucketing,
    fields: Mapping[str, Sequence[str]],
) -> list[dict[str, Any]]:
    """Collapse *records* into one output row per calendar bucket.

    Parameters
    ----------
    records : iterable
        Interval records (dataclasses or mappings) with a ``timestamp``
        datetime.
    bucketing : {"daily", "monthly"} or TimeBucketing
        Bucket width.
    fields : mapping
        ``{"sum": [...], "average": [...]}``; either key may be omitted.

    Returns
    -------
    list[dict]
        One row per local calendar day or month, in calendar order, with
        ``timestamp`` (bucket start at 00:00 in the time zone of the bucket's
        first record), ``timestamp_ms`` and each requested field.

    Raises
    ------
    ValueError
        If a requested field holds a non-numeric value.
    """
    slotter = get_bucketing(bucketing)
    sum_fields = list(fields.get("sum", ()))
    avg_fields = list(fields.get("average", ()))

    buckets: dict[tuple[int, ...], dict[str, Any]] = {}

    for record in records:
        ts = _field(record, "timestamp")
        key = slotter.key(ts)
        entry = buckets.get(key)
        if entry is None:
            entry = {
                "start": slotter.time_slot(ts),
                "count": 0,
                "sums": dict.fromkeys(sum_fields, 0.0),
                "totals": dict.fromkeys(avg_fields, 0.0),
            }
            buckets[key] = entry

        entry["count"] += 1
        for name in sum_fields:
            value = _numeric(record, name, ts)
            if value is not None:
                entry["sums"][name] += value
        for name in avg_fields:
            value = _numeric(record, name, ts)
            if value is not None:
                entry["totals"][name] += value

    rows: list[dict[str, Any]] = []
    for key in sorted(buckets):
        entry = buckets[key]
        start = entry["start"]
        row: dict[str, Any] = {"timestamp": start, "timestamp_ms": to_epoch_ms(start)}
        for name in sum_fields:
            row[name] = entry["sums"][name]
        for name in avg_fields:
            row[name] = entry["totals"][name] / entry["count"] if entry["count"] else 0.0
        rows.append(row)

    return rows


def energy_view(
    records: Sequence[Any],
    level: str,
    dt_hours: float = INTERVAL_HOURS,
) -> list[Any]:
    """Chart-ready energy series at ``"15min"``, ``"daily"`` or ``"monthly"``.

    At ``"15min"`` the records are returned unchanged.  Coarser levels sum
    the energy flows (solar converted to kWh first) and average the SOC;
    ``production_kw`` of an aggregated row holds the summed solar kWh.
    """
    if level == "15min" or not records:
        return list(records)

    with_energy = []
    for record in records:
        row = _as_mapping(record)
        row["production_kwh"] = (row.get("production_kw") or 0.0) * dt_hours
        with_energy.append(row)

    aggregated = aggregate(
        with_energy,
        level,
        {"sum": ENERGY_SUM_FIELDS, "average": STATE_AVERAGE_FIELDS},
    )
    for row in aggregated:
        row["production_kw"] = row["production_kwh"]
    return aggregated

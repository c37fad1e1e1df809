"""
Interval records for metered solar / grid time series.

An ``IntervalRecord`` is one fixed-width metering interval (15 minutes by
default) as produced by the upstream merge step: instantaneous solar power
plus the grid import / export energy measured *without* a battery.  The
dispatch simulator returns ``SimulatedIntervalRecord`` objects, which carry
the same fields plus the battery state and the grid flows left over after
battery intervention.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from batterysim.exceptions import IntervalSequenceError

logger = logging.getLogger(__name__)

# ======================================================================
# Constants
# ======================================================================

INTERVAL_MINUTES: int = 15
INTERVAL_HOURS: float = INTERVAL_MINUTES / 60.0  # 0.25 h


def to_epoch_ms(ts: datetime) -> int:
    """Return epoch milliseconds for *ts*; naive datetimes are read as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(round(ts.timestamp() * 1000))


# ======================================================================
# Record types
# ======================================================================

@dataclass(frozen=True)
class IntervalRecord:
    """One metering interval without a battery.

    Parameters
    ----------
    timestamp : datetime
        Start of the interval.
    production_kw : float
        Solar power during the interval (kW, not energy).
    import_kwh : float
        Energy imported from the grid over the interval (kWh).
    export_kwh : float
        Energy exported to the grid over the interval (kWh).
    """

    timestamp: datetime
    production_kw: float = 0.0
    import_kwh: float = 0.0
    export_kwh: float = 0.0

    @property
    def timestamp_ms(self) -> int:
        return to_epoch_ms(self.timestamp)

    def production_kwh(self, dt_hours: float = INTERVAL_HOURS) -> float:
        """Solar energy produced over the interval."""
        return self.production_kw * dt_hours

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "IntervalRecord":
        """Build a record from a dict with ``timestamp`` and flow keys."""
        ts = row["timestamp"]
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts)
        return cls(
            timestamp=ts,
            production_kw=float(row.get("production_kw", 0.0)),
            import_kwh=float(row.get("import_kwh", 0.0)),
            export_kwh=float(row.get("export_kwh", 0.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["timestamp_ms"] = self.timestamp_ms
        return out


@dataclass(frozen=True)
class SimulatedIntervalRecord(IntervalRecord):
    """An ``IntervalRecord`` augmented with battery state and residual grid flows.

    The ``battery_*_kw`` fields are energy-this-interval divided by the
    interval length, i.e. a kW-equivalent rate.
    """

    battery_soc_kwh: float = 0.0
    battery_soc_percent: float = 0.0
    battery_charge_kw: float = 0.0
    battery_discharge_kw: float = 0.0
    battery_loss_kw: float = 0.0
    grid_import_with_battery: float = 0.0
    grid_export_with_battery: float = 0.0

    @classmethod
    def from_interval(
        cls, record: IntervalRecord, **battery_fields: float
    ) -> "SimulatedIntervalRecord":
        """Copy *record* and attach the given battery fields."""
        return cls(
            timestamp=record.timestamp,
            production_kw=record.production_kw,
            import_kwh=record.import_kwh,
            export_kwh=record.export_kwh,
            **battery_fields,
        )


# ======================================================================
# Validation
# ======================================================================

def validate_records(
    records: Iterable[IntervalRecord],
    dt_hours: float = INTERVAL_HOURS,
) -> list[IntervalRecord]:
    """Check the basic sequence invariants and return the records as a list.

    Raises ``IntervalSequenceError`` if timestamps are not strictly
    ascending or a flow value is not finite.  Gaps that differ from
    ``dt_hours`` are only logged: the upstream merge step owns cadence.
    """
    out = list(records)
    expected_ms = int(round(dt_hours * 3_600_000))
    irregular = 0
    prev_ms: int | None = None

    for i, rec in enumerate(out):
        for name in ("production_kw", "import_kwh", "export_kwh"):
            value = getattr(rec, name)
            if not math.isfinite(value):
                raise IntervalSequenceError(
                    f"record {i} ({rec.timestamp.isoformat()}): {name} is {value}"
                )

        ts_ms = rec.timestamp_ms
        if prev_ms is not None:
            if ts_ms <= prev_ms:
                raise IntervalSequenceError(
                    f"record {i} ({rec.timestamp.isoformat()}) is not after the "
                    f"previous record; timestamps must be strictly ascending"
                )
            if ts_ms - prev_ms != expected_ms:
                irregular += 1
        prev_ms = ts_ms

    if irregular:
        logger.warning(
            "%d of %d interval gaps differ from the expected %.2f h cadence",
            irregular,
            max(len(out) - 1, 0),
            dt_hours,
        )

    return out


"""Rule-based battery dispatch over metered interval data.

Walks the interval sequence once, left to right, and decides for each
interval whether the battery charges, discharges or idles.  Decisions depend
only on the running SOC and the interval's own import / export; there is no
lookahead.

**Asymmetric inverter (net metering):** dispatch on ``export - import``.
Surplus charges the battery and reduces export; deficit discharges it and
reduces import.

**Symmetric inverter:** the battery may only charge in a pure-surplus interval
(``export > 0`` and ``import == 0``) and only discharge in a pure-deficit
interval (``import > 0`` and ``export == 0``).  Mixed intervals idle.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from batterysim.battery.config import BatteryConfig, InverterMode
from batterysim.battery.soc_tracker import ChargeStep, SOCTracker
from batterysim.timeseries.records import IntervalRecord, SimulatedIntervalRecord

logger = logging.getLogger(__name__)

# (surplus_kwh, deficit_kwh) the battery may act on for one interval.
_Opportunity = tuple[float, float]


# ---------------------------------------------------------------------------
# Per-mode opportunity rules
# ---------------------------------------------------------------------------


def _asymmetric_opportunity(record: IntervalRecord) -> _Opportunity:
    net = record.export_kwh - record.import_kwh
    if net > 0:
        return net, 0.0
    if net < 0:
        return 0.0, -net
    return 0.0, 0.0


def _symmetric_opportunity(record: IntervalRecord) -> _Opportunity:
    if record.export_kwh > 0 and record.import_kwh == 0:
        return record.export_kwh, 0.0
    if record.import_kwh > 0 and record.export_kwh == 0:
        return 0.0, record.import_kwh
    return 0.0, 0.0


_OPPORTUNITY_RULES: dict[InverterMode, Callable[[IntervalRecord], _Opportunity]] = {
    InverterMode.ASYMMETRIC: _asymmetric_opportunity,
    InverterMode.SYMMETRIC: _symmetric_opportunity,
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def simulate_dispatch(
    records: Iterable[IntervalRecord],
    config: BatteryConfig,
) -> list[SimulatedIntervalRecord]:
    """Run the battery through *records* and return augmented records.

    Parameters
    ----------
    records : iterable of IntervalRecord
        Contiguous, ascending interval records measured without a battery.
    config : BatteryConfig
        Battery parameters.  ``config.interval_hours`` converts between the
        per-interval energy used internally and the kW rates reported.

    Returns
    -------
    list[SimulatedIntervalRecord]
        One output record per input record, in the same order.  Battery rate
        fields are energy-this-interval / ``interval_hours``; the SOC fields
        are the state at the *end* of the interval.
    """
    dt = config.interval_hours
    opportunity = _OPPORTUNITY_RULES[config.inverter_mode]
    tracker = SOCTracker(config)

    simulated: list[SimulatedIntervalRecord] = []

    for record in records:
        surplus, deficit = opportunity(record)

        charge = discharge = None
        grid_import = record.import_kwh
        grid_export = record.export_kwh

        if surplus > 0:
            charge = tracker.charge(min(surplus, config.max_charge_kwh))
            grid_export = record.export_kwh - charge.drawn
        elif deficit > 0:
            discharge = tracker.discharge(min(deficit, config.max_discharge_kwh))
            grid_import = record.import_kwh - discharge.useful

        step: ChargeStep | None = charge or discharge
        loss = step.loss if step is not None else 0.0

        simulated.append(
            SimulatedIntervalRecord.from_interval(
                record,
                battery_soc_kwh=tracker.soc_kwh,
                battery_soc_percent=tracker.soc_percent,
                battery_charge_kw=charge.drawn / dt if charge is not None else 0.0,
                battery_discharge_kw=(
                    discharge.drawn / dt if discharge is not None else 0.0
                ),
                battery_loss_kw=loss / dt,
                grid_import_with_battery=grid_import,
                grid_export_with_battery=grid_export,
            )
        )

    logger.debug(
        "Dispatched %d intervals (%s mode), final SOC %.3f kWh",
        len(simulated),
        config.inverter_mode.value,
        tracker.soc_kwh,
    )
    return simulated

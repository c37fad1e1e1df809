"""
State of Charge (SOC) tracker in kWh.

Tracks energy flowing in and out of the battery with separate one-way charge
and discharge efficiencies.  Requests are clamped to the SOC window, and the
energy lost to inefficiency is reported back to the caller rather than kept:
losses never enter the stored energy or the grid flows.
"""

from __future__ import annotations

from typing import NamedTuple

from batterysim.battery.config import BatteryConfig


class ChargeStep(NamedTuple):
    """Outcome of one charge or discharge request (all kWh)."""

    drawn: float      # energy taken from (charge) or released by (discharge) the cell side
    useful: float     # energy stored (charge) or delivered to the load (discharge)
    loss: float       # drawn - useful


_IDLE = ChargeStep(0.0, 0.0, 0.0)


class SOCTracker:
    """Energy-counting SOC tracker with efficiency and SOC bounds.

    Efficiency convention
    ---------------------
    * **Charging** -- of the ``E`` kWh drawn from the surplus, only
      ``E * charge_efficiency`` is stored.
    * **Discharging** -- of the ``E`` kWh released from storage, only
      ``E * discharge_efficiency`` reaches the load.

    The tracker starts at ``min_soc_percent`` of capacity and is meant to
    live for exactly one pass over one record sequence.
    """

    def __init__(self, config: BatteryConfig) -> None:
        self.capacity_kwh: float = config.capacity_kwh
        self.charge_efficiency: float = config.charge_efficiency
        self.discharge_efficiency: float = config.discharge_efficiency
        self.min_kwh: float = config.min_soc_kwh
        self.max_kwh: float = config.max_soc_kwh

        self._soc_kwh: float = self.min_kwh

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def soc_kwh(self) -> float:
        return self._soc_kwh

    @property
    def soc_percent(self) -> float:
        if self.capacity_kwh <= 0:
            return 0.0
        return self._soc_kwh / self.capacity_kwh * 100.0

    @property
    def headroom_kwh(self) -> float:
        """Room left below the upper SOC limit, never negative."""
        return max(0.0, self.max_kwh - self._soc_kwh)

    @property
    def available_kwh(self) -> float:
        """Energy above the lower SOC limit, never negative."""
        return max(0.0, self._soc_kwh - self.min_kwh)

    def charge(self, requested_kwh: float) -> ChargeStep:
        """Draw up to *requested_kwh* into the battery.

        The draw is clamped to the headroom; the headroom is measured against
        the energy drawn, not the energy stored.
        """
        drawn = min(requested_kwh, self.headroom_kwh)
        if drawn <= 0:
            return _IDLE

        stored = drawn * self.charge_efficiency
        self._soc_kwh += stored
        return ChargeStep(drawn, stored, drawn - stored)

    def discharge(self, requested_kwh: float) -> ChargeStep:
        """Release up to *requested_kwh* from the battery."""
        drawn = min(requested_kwh, self.available_kwh)
        if drawn <= 0:
            return _IDLE

        delivered = drawn * self.discharge_efficiency
        self._soc_kwh -= drawn
        return ChargeStep(drawn, delivered, drawn - delivered)

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"SOCTracker(capacity_kwh={self.capacity_kwh}, "
            f"soc_kwh={self._soc_kwh:.4f})"
        )

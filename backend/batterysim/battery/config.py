"""
Battery simulation parameters.

``BatteryConfig`` is an immutable value passed into every simulation call.
Sweeps over candidate capacities build new configs with
:meth:`BatteryConfig.replace` instead of mutating shared state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from batterysim.exceptions import ConfigurationError
from batterysim.grid.tariff import PRICING_PRESETS, PricingTier
from batterysim.timeseries.records import INTERVAL_HOURS

logger = logging.getLogger(__name__)

DEFAULT_CHARGE_EFFICIENCY: float = 0.96
DEFAULT_DISCHARGE_EFFICIENCY: float = 0.92


class InverterMode(str, Enum):
    """How the inverter is allowed to move energy in one interval.

    * ``ASYMMETRIC`` -- net-metering: dispatch on ``export - import``.
    * ``SYMMETRIC`` -- only pure-surplus or pure-deficit intervals.
    """

    ASYMMETRIC = "asymmetric"
    SYMMETRIC = "symmetric"


def _valid_efficiency(value: float) -> bool:
    return 0.0 < value <= 1.0


@dataclass(frozen=True)
class BatteryConfig:
    """Battery, inverter and pricing parameters for one simulation run.

    Parameters
    ----------
    capacity_kwh : float
        Usable nameplate capacity.  Zero is accepted and yields a battery
        that never moves energy.
    charge_efficiency, discharge_efficiency : float
        One-way efficiencies in (0, 1].  Out-of-range values are replaced by
        0.96 / 0.92 and a warning is logged.
    max_charge_rate_kw, max_discharge_rate_kw : float
        Inverter power limits (>= 0).
    min_soc_percent, max_soc_percent : float
        SoC window in percent of capacity, ``0 <= min < max <= 100``.
    inverter_mode : InverterMode
        ``asymmetric`` or ``symmetric``.
    currency : str
        Key into ``pricing`` selecting the active :class:`PricingTier`.
    pricing : Mapping[str, PricingTier]
        Available tariffs by currency.  Defaults to the HUF / EUR presets.
        Stored as a read-only copy and left out of the hash.
    interval_hours : float
        Width of one input interval in hours.  Default 0.25.
    """

    capacity_kwh: float = 10.0
    charge_efficiency: float = DEFAULT_CHARGE_EFFICIENCY
    discharge_efficiency: float = DEFAULT_DISCHARGE_EFFICIENCY
    max_charge_rate_kw: float = 5.0
    max_discharge_rate_kw: float = 5.0
    min_soc_percent: float = 10.0
    max_soc_percent: float = 90.0
    inverter_mode: InverterMode = InverterMode.ASYMMETRIC
    currency: str = "HUF"
    pricing: Mapping[str, PricingTier] = field(
        default_factory=lambda: dict(PRICING_PRESETS), hash=False
    )
    interval_hours: float = INTERVAL_HOURS

    def __post_init__(self) -> None:
        # Efficiency is self-healing; everything else is rejected.
        if not _valid_efficiency(self.charge_efficiency):
            logger.warning(
                "charge_efficiency must be in (0, 1], got %s; using %s",
                self.charge_efficiency,
                DEFAULT_CHARGE_EFFICIENCY,
            )
            object.__setattr__(self, "charge_efficiency", DEFAULT_CHARGE_EFFICIENCY)
        if not _valid_efficiency(self.discharge_efficiency):
            logger.warning(
                "discharge_efficiency must be in (0, 1], got %s; using %s",
                self.discharge_efficiency,
                DEFAULT_DISCHARGE_EFFICIENCY,
            )
            object.__setattr__(
                self, "discharge_efficiency", DEFAULT_DISCHARGE_EFFICIENCY
            )

        if self.capacity_kwh < 0:
            raise ConfigurationError(
                f"capacity_kwh must be >= 0, got {self.capacity_kwh}"
            )
        if self.max_charge_rate_kw < 0:
            raise ConfigurationError(
                f"max_charge_rate_kw must be >= 0, got {self.max_charge_rate_kw}"
            )
        if self.max_discharge_rate_kw < 0:
            raise ConfigurationError(
                f"max_discharge_rate_kw must be >= 0, got {self.max_discharge_rate_kw}"
            )
        if not 0 <= self.min_soc_percent < self.max_soc_percent <= 100:
            raise ConfigurationError(
                "Need 0 <= min_soc_percent < max_soc_percent <= 100, got "
                f"min_soc_percent={self.min_soc_percent}, "
                f"max_soc_percent={self.max_soc_percent}"
            )
        if self.interval_hours <= 0:
            raise ConfigurationError(
                f"interval_hours must be positive, got {self.interval_hours}"
            )

        try:
            mode = InverterMode(self.inverter_mode)
        except ValueError:
            raise ConfigurationError(
                f"inverter_mode must be one of "
                f"{[m.value for m in InverterMode]}, got {self.inverter_mode!r}"
            ) from None
        object.__setattr__(self, "inverter_mode", mode)
        object.__setattr__(self, "pricing", MappingProxyType(dict(self.pricing)))

        if self.currency not in self.pricing:
            raise ConfigurationError(
                f"currency must be one of {sorted(self.pricing)}, "
                f"got {self.currency!r}"
            )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def min_soc_kwh(self) -> float:
        return self.min_soc_percent / 100.0 * self.capacity_kwh

    @property
    def max_soc_kwh(self) -> float:
        return self.max_soc_percent / 100.0 * self.capacity_kwh

    @property
    def max_charge_kwh(self) -> float:
        """Largest energy the inverter can draw in one interval."""
        return self.max_charge_rate_kw * self.interval_hours

    @property
    def max_discharge_kwh(self) -> float:
        """Largest energy the inverter can release in one interval."""
        return self.max_discharge_rate_kw * self.interval_hours

    @property
    def tier(self) -> PricingTier:
        """The pricing tier selected by ``currency``."""
        return self.pricing[self.currency]

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def replace(self, **changes: Any) -> "BatteryConfig":
        """Return a new, re-validated config with *changes* applied."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatteryConfig":
        """Build a config from a plain dict, ignoring unknown keys."""
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {k: v for k, v in data.items() if k in known}
        if "pricing" in kwargs:
            kwargs["pricing"] = {
                cur: tier if isinstance(tier, PricingTier) else PricingTier(**tier)
                for cur, tier in kwargs["pricing"].items()
            }
        return cls(**kwargs)

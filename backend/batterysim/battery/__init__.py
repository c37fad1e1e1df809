"""Battery parameters and SOC tracking."""

from .config import BatteryConfig, InverterMode
from .soc_tracker import SOCTracker

__all__ = ["BatteryConfig", "InverterMode", "SOCTracker"]

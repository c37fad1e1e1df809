"""Battery dispatch over metered interval data.

Inverter modes:

* **asymmetric** -- net-metering, dispatch on ``export - import``.
* **symmetric** -- only pure-surplus / pure-deficit intervals.
"""

from .simulator import simulate_dispatch

__all__ = ["simulate_dispatch"]

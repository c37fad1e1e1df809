"""Two-tier import tariff with a flat export credit.

Import is priced at ``tier1_import_price`` until the *cumulative* import over
the billed window reaches ``tier1_limit_kwh``; every kWh after that costs
``tier2_import_price``.  Export is always credited at the flat
``export_price``.  Because the tier depends on cumulative import, the price of
one interval depends on everything imported before it in the same billing
window, so intervals must be walked in time order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, Optional, Sequence

from batterysim.exceptions import ConfigurationError


# ======================================================================
# Pricing tier
# ======================================================================

@dataclass(frozen=True)
class PricingTier:
    """Unit prices for one currency.

    Parameters
    ----------
    tier1_import_price : float
        Import price per kWh below the tier limit.
    tier2_import_price : float
        Import price per kWh above the tier limit.
    export_price : float
        Credit per exported kWh.
    tier1_limit_kwh : float
        Cumulative import at which the price steps from tier 1 to tier 2.
    """

    tier1_import_price: float
    tier2_import_price: float
    export_price: float
    tier1_limit_kwh: float

    def __post_init__(self) -> None:
        for name in (
            "tier1_import_price",
            "tier2_import_price",
            "export_price",
            "tier1_limit_kwh",
        ):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be >= 0, got {getattr(self, name)}")


PRICING_PRESETS: Dict[str, PricingTier] = {
    "HUF": PricingTier(
        tier1_import_price=36.0,
        tier2_import_price=70.0,
        export_price=5.0,
        tier1_limit_kwh=2523.0,
    ),
    "EUR": PricingTier(
        tier1_import_price=0.09,
        tier2_import_price=0.18,
        export_price=0.01,
        tier1_limit_kwh=2523.0,
    ),
}


# ======================================================================
# Cost calculation
# ======================================================================

@dataclass(frozen=True)
class CostBreakdown:
    """Energy and money per tariff component for one series."""

    tier1_kwh: float = 0.0
    tier2_kwh: float = 0.0
    export_kwh: float = 0.0
    import_cost: float = 0.0
    export_credit: float = 0.0
    total_cost: float = 0.0


@dataclass(frozen=True)
class TieredTariff:
    """Cost calculator for a :class:`PricingTier`."""

    tier: PricingTier

    def cost(
        self,
        imports: Sequence[float],
        exports: Sequence[float],
        period_keys: Optional[Sequence[Hashable]] = None,
    ) -> float:
        """Total cost (import cost minus export credit) of a series.

        Parameters
        ----------
        imports, exports : sequence of float
            Parallel kWh-per-interval series, in time order.
        period_keys : sequence, optional
            Billing-period key per interval.  Cumulative import restarts at
            zero whenever the key changes.  When omitted the whole series is
            one billing cycle.
        """
        return self.breakdown(imports, exports, period_keys).total_cost

    def breakdown(
        self,
        imports: Sequence[float],
        exports: Sequence[float],
        period_keys: Optional[Sequence[Hashable]] = None,
    ) -> CostBreakdown:
        """Like :meth:`cost` but also reports the tier split."""
        if len(imports) != len(exports):
            raise ValueError(
                f"imports and exports must have the same length, got "
                f"{len(imports)} and {len(exports)}"
            )
        if period_keys is not None and len(period_keys) != len(imports):
            raise ValueError(
                f"period_keys must have {len(imports)} entries, got {len(period_keys)}"
            )

        limit = self.tier.tier1_limit_kwh
        p1 = self.tier.tier1_import_price
        p2 = self.tier.tier2_import_price
        pe = self.tier.export_price

        total_cost = 0.0
        import_cost = 0.0
        export_credit = 0.0
        tier1_kwh = 0.0
        tier2_kwh = 0.0
        export_kwh = 0.0
        cumulative_import = 0.0
        current_period: Hashable = None

        for i, (x, e) in enumerate(zip(imports, exports)):
            if period_keys is not None:
                if i == 0 or period_keys[i] != current_period:
                    current_period = period_keys[i]
                    cumulative_import = 0.0

            before = cumulative_import
            after = before + x

            if after <= limit:
                t1, t2 = x, 0.0
                interval_import_cost = x * p1
            elif before >= limit:
                t1, t2 = 0.0, x
                interval_import_cost = x * p2
            else:
                # Crosses the tier boundary inside this interval.
                t1 = limit - before
                t2 = x - t1
                interval_import_cost = t1 * p1 + t2 * p2

            interval_export_credit = e * pe

            total_cost += interval_import_cost - interval_export_credit
            import_cost += interval_import_cost
            export_credit += interval_export_credit
            tier1_kwh += t1
            tier2_kwh += t2
            export_kwh += e
            cumulative_import += x

        return CostBreakdown(
            tier1_kwh=tier1_kwh,
            tier2_kwh=tier2_kwh,
            export_kwh=export_kwh,
            import_cost=import_cost,
            export_credit=export_credit,
            total_cost=total_cost,
        )

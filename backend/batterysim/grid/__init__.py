"""Grid tariff module."""

from .tariff import PRICING_PRESETS, CostBreakdown, PricingTier, TieredTariff

__all__ = ["PRICING_PRESETS", "CostBreakdown", "PricingTier", "TieredTariff"]

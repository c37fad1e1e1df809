from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.config import settings
from batterysim.battery.config import BatteryConfig
from batterysim.grid.tariff import PricingTier
from batterysim.timeseries.records import IntervalRecord


class IntervalRecordIn(BaseModel):
    timestamp: datetime
    production_kw: float = 0.0
    import_kwh: float = 0.0
    export_kwh: float = 0.0

    def to_record(self) -> IntervalRecord:
        return IntervalRecord(
            timestamp=self.timestamp,
            production_kw=self.production_kw,
            import_kwh=self.import_kwh,
            export_kwh=self.export_kwh,
        )


class PricingTierSchema(BaseModel):
    tier1_import_price: float = Field(ge=0.0)
    tier2_import_price: float = Field(ge=0.0)
    export_price: float = Field(ge=0.0)
    tier1_limit_kwh: float = Field(ge=0.0)

    model_config = {"from_attributes": True}


class BatteryParams(BaseModel):
    capacity_kwh: float = Field(default=10.0, ge=0.0)
    # Efficiencies are not range-checked here: out-of-range values fall back
    # to the engine defaults instead of failing the request.
    charge_efficiency: float = 0.96
    discharge_efficiency: float = 0.92
    max_charge_rate_kw: float = Field(default=5.0, ge=0.0)
    max_discharge_rate_kw: float = Field(default=5.0, ge=0.0)
    min_soc_percent: float = Field(default=10.0, ge=0.0, le=100.0)
    max_soc_percent: float = Field(default=90.0, ge=0.0, le=100.0)
    inverter_mode: Literal["asymmetric", "symmetric"] = "asymmetric"
    currency: str = Field(default_factory=lambda: settings.default_currency)
    pricing: dict[str, PricingTierSchema] | None = Field(
        default=None, description="Custom tariffs by currency; defaults to the HUF/EUR presets"
    )

    def to_config(self) -> BatteryConfig:
        data = self.model_dump(exclude={"pricing"})
        if self.pricing is not None:
            data["pricing"] = {
                cur: PricingTier(**tier.model_dump()) for cur, tier in self.pricing.items()
            }
        data["interval_hours"] = settings.interval_hours
        return BatteryConfig.from_dict(data)


class SimulationRequest(BaseModel):
    records: list[IntervalRecordIn]
    battery: BatteryParams = Field(default_factory=BatteryParams)
    aggregation: Literal["15min", "daily", "monthly"] = "15min"
    include_records: bool = True
    billing_period: Literal["continuous", "monthly"] | None = None


class MetricsSnapshotResponse(BaseModel):
    solar_production: float
    grid_import: float
    grid_export: float
    solar_self_consumption: float
    self_consumption_rate: float
    battery_self_consumption: float
    battery_losses: float

    model_config = {"from_attributes": True}


class ImprovementsResponse(BaseModel):
    grid_import_reduction: float
    grid_import_reduction_percent: float
    grid_export_reduction: float
    grid_export_reduction_percent: float
    self_consumption_improvement: float
    self_consumption_improvement_percent: float

    model_config = {"from_attributes": True}


class CostBreakdownResponse(BaseModel):
    tier1_kwh: float
    tier2_kwh: float
    export_kwh: float
    import_cost: float
    export_credit: float
    total_cost: float

    model_config = {"from_attributes": True}


class FinancialsResponse(BaseModel):
    baseline_cost: float
    battery_cost: float
    total_savings: float
    savings_percent: float
    currency: str
    baseline_breakdown: CostBreakdownResponse | None = None
    battery_breakdown: CostBreakdownResponse | None = None

    model_config = {"from_attributes": True}


class SimulationResponse(BaseModel):
    before: MetricsSnapshotResponse
    after: MetricsSnapshotResponse
    improvements: ImprovementsResponse
    financials: FinancialsResponse
    aggregation: str
    records: list[dict[str, Any]] = Field(default_factory=list)


class AggregateRow(BaseModel):
    timestamp: datetime

    model_config = {"extra": "allow"}


class AggregateRequest(BaseModel):
    records: list[AggregateRow]
    level: Literal["daily", "monthly"] = "daily"
    sum: list[str] = Field(default_factory=list)
    average: list[str] = Field(default_factory=list)


class AggregateResponse(BaseModel):
    level: str
    buckets: list[dict[str, Any]]


class YearlyRequest(BaseModel):
    records: list[IntervalRecordIn]
    year: int | None = Field(
        default=None, description="Calendar year; defaults to the newest complete year"
    )
    battery: BatteryParams = Field(default_factory=BatteryParams)
    billing_period: Literal["continuous", "monthly"] | None = None


class MonthlyResultResponse(BaseModel):
    month_index: int
    month: str
    data_points: int
    solar_production: float
    self_consumption_before: float
    self_consumption_after: float
    grid_export_reduction: float
    self_consumption_before_pct: float
    self_consumption_after_pct: float
    grid_export_reduction_pct: float
    baseline_cost: float
    battery_cost: float
    savings: float
    savings_pct: float

    model_config = {"from_attributes": True}


class YearlyResponse(BaseModel):
    year: int
    battery_capacity_kwh: float
    currency: str
    solar_production: float
    self_consumption_before: float
    self_consumption_after: float
    grid_export_reduction: float
    baseline_cost: float
    battery_cost: float
    savings: float
    self_consumption_before_pct: float
    self_consumption_after_pct: float
    grid_export_reduction_pct: float
    savings_pct: float
    monthly_results: list[MonthlyResultResponse]

    model_config = {"from_attributes": True}

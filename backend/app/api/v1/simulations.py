import logging
import math
from typing import Any

from fastapi import APIRouter, HTTPException, status

from app.config import settings
from app.schemas.simulation import (
    AggregateRequest,
    AggregateResponse,
    FinancialsResponse,
    ImprovementsResponse,
    MetricsSnapshotResponse,
    PricingTierSchema,
    SimulationRequest,
    SimulationResponse,
    YearlyRequest,
    YearlyResponse,
)
from batterysim.analysis.yearly import complete_years, run_yearly_analysis
from batterysim.exceptions import BatterySimError
from batterysim.grid.tariff import PRICING_PRESETS
from batterysim.simulation.runner import SimulationRunner
from batterysim.timeseries.aggregation import aggregate, energy_view

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_size(n_records: int) -> None:
    if n_records > settings.max_records:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"At most {settings.max_records} records per request, got {n_records}",
        )


def _safe_row(row: Any) -> dict[str, Any]:
    """Record or aggregated row as a JSON-safe dict (inf/nan -> None)."""
    data = row if isinstance(row, dict) else row.to_dict()
    return {
        k: None if isinstance(v, float) and (math.isinf(v) or math.isnan(v)) else v
        for k, v in data.items()
    }


@router.post(
    "/simulations/battery",
    response_model=SimulationResponse,
    summary="Simulate battery",
    description="Run the battery dispatch over interval records and return energy and cost metrics.",
)
async def simulate_battery(body: SimulationRequest):
    _check_size(len(body.records))
    try:
        config = body.battery.to_config()
        runner = SimulationRunner(
            config, body.billing_period or settings.billing_period
        )
        result = runner.run(r.to_record() for r in body.records)
    except BatterySimError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        )

    logger.info(
        "Simulated %d intervals", len(result.records),
        extra={
            "intervals": len(result.records),
            "currency": config.currency,
            "inverter_mode": config.inverter_mode.value,
        },
    )

    rows: list[dict[str, Any]] = []
    if body.include_records:
        view = energy_view(result.records, body.aggregation, config.interval_hours)
        rows = [_safe_row(r) for r in view]

    return SimulationResponse(
        before=MetricsSnapshotResponse.model_validate(result.before),
        after=MetricsSnapshotResponse.model_validate(result.after),
        improvements=ImprovementsResponse.model_validate(result.improvements),
        financials=FinancialsResponse.model_validate(result.financials),
        aggregation=body.aggregation,
        records=rows,
    )


@router.post(
    "/simulations/aggregate",
    response_model=AggregateResponse,
    summary="Aggregate records",
    description="Sum and average record fields per calendar day or month.",
)
async def aggregate_records(body: AggregateRequest):
    _check_size(len(body.records))
    try:
        buckets = aggregate(
            [r.model_dump() for r in body.records],
            body.level,
            {"sum": body.sum, "average": body.average},
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        )
    return AggregateResponse(level=body.level, buckets=[_safe_row(b) for b in buckets])


@router.post(
    "/simulations/yearly",
    response_model=YearlyResponse,
    summary="Yearly analysis",
    description="Simulate one calendar year and break the results down by month.",
)
async def yearly_analysis(body: YearlyRequest):
    _check_size(len(body.records))
    records = [r.to_record() for r in body.records]
    try:
        config = body.battery.to_config()
        year = body.year
        if year is None:
            years = complete_years(records, config.interval_hours)
            if not years:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="No complete calendar year in the supplied records",
                )
            year = years[0]
        totals = run_yearly_analysis(
            records, year, config, body.billing_period or settings.billing_period
        )
    except (BatterySimError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        )

    return YearlyResponse.model_validate(totals)


@router.get(
    "/pricing",
    response_model=dict[str, PricingTierSchema],
    summary="Pricing presets",
)
async def pricing_presets():
    return {
        cur: PricingTierSchema.model_validate(tier)
        for cur, tier in PRICING_PRESETS.items()
    }

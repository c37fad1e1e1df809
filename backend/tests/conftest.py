"""Shared test fixtures for battery simulation engine and API tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import numpy as np
import pytest

from batterysim.battery.config import BatteryConfig
from batterysim.timeseries.records import INTERVAL_HOURS, IntervalRecord

INTERVALS_PER_DAY = 96
STEP = timedelta(minutes=15)


def make_records(
    start: datetime,
    production_kw,
    load_kw,
    dt_hours: float = INTERVAL_HOURS,
) -> list[IntervalRecord]:
    """Build metered records from production and load power profiles.

    Import / export are the net of production and load over each interval,
    so no interval has both.
    """
    production_kw = np.asarray(production_kw, dtype=np.float64)
    load_kw = np.asarray(load_kw, dtype=np.float64)
    net_kwh = (production_kw - load_kw) * dt_hours
    step = timedelta(hours=dt_hours)

    return [
        IntervalRecord(
            timestamp=start + i * step,
            production_kw=float(production_kw[i]),
            import_kwh=float(max(-net_kwh[i], 0.0)),
            export_kwh=float(max(net_kwh[i], 0.0)),
        )
        for i in range(len(production_kw))
    ]


def solar_day_profile(days: int = 1, peak_kw: float = 6.0) -> np.ndarray:
    """Bell-shaped PV output between 06:00 and 18:00, zero at night."""
    hours = (np.arange(days * INTERVALS_PER_DAY) % INTERVALS_PER_DAY) * 0.25
    daytime = (hours >= 6) & (hours <= 18)
    return np.where(daytime, peak_kw * np.sin(np.pi * (hours - 6) / 12), 0.0)


def household_load_profile(days: int = 1) -> np.ndarray:
    """0.5 kW base load with a 2.5 kW evening peak (18:00 -- 22:00)."""
    hours = (np.arange(days * INTERVALS_PER_DAY) % INTERVALS_PER_DAY) * 0.25
    return np.where((hours >= 18) & (hours < 22), 2.5, 0.5)


# ======================================================================
# Record fixtures
# ======================================================================

@pytest.fixture
def summer_day() -> list[IntervalRecord]:
    """One sunny June day: midday surplus, evening deficit."""
    return make_records(
        datetime(2024, 6, 1), solar_day_profile(1), household_load_profile(1)
    )


@pytest.fixture
def summer_week() -> list[IntervalRecord]:
    """Seven sunny days starting 2024-06-01."""
    return make_records(
        datetime(2024, 6, 1), solar_day_profile(7), household_load_profile(7)
    )


@pytest.fixture
def noisy_records() -> list[IntervalRecord]:
    """Three days of random import/export, including mixed intervals."""
    rng = np.random.default_rng(42)
    n = 3 * INTERVALS_PER_DAY
    start = datetime(2024, 3, 10)
    imports = np.where(rng.random(n) < 0.5, rng.uniform(0, 1.5, n), 0.0)
    exports = np.where(rng.random(n) < 0.5, rng.uniform(0, 1.5, n), 0.0)
    production = rng.uniform(0, 8, n)
    return [
        IntervalRecord(
            timestamp=start + i * STEP,
            production_kw=float(production[i]),
            import_kwh=float(imports[i]),
            export_kwh=float(exports[i]),
        )
        for i in range(n)
    ]


# ======================================================================
# Config fixtures
# ======================================================================

@pytest.fixture
def default_config() -> BatteryConfig:
    """10 kWh, 96 % / 92 %, 5 kW, 10 -- 90 % SOC, asymmetric, HUF."""
    return BatteryConfig()


@pytest.fixture
def symmetric_config() -> BatteryConfig:
    return BatteryConfig(inverter_mode="symmetric")


@pytest.fixture(scope="session")
def year_2023() -> list[IntervalRecord]:
    """A complete calendar year (35,040 intervals) of the summer-day profile."""
    return make_records(
        datetime(2023, 1, 1), solar_day_profile(365), household_load_profile(365)
    )


@pytest.fixture
def dst_week() -> list[IntervalRecord]:
    """2024-03-30 -- 04-02 local time with fixed +01:00 / +02:00 offsets.

    Timestamps carry the UTC offset the meter exports, not a zone, so the
    records of one day or month span two different ``tzinfo`` objects across
    the 2024-03-31 DST change.  Every interval imports 0.1 kWh.
    """
    budapest = ZoneInfo("Europe/Budapest")
    start = datetime(2024, 3, 29, 23, 0, tzinfo=timezone.utc)  # 03-30 00:00 CET
    end = datetime(2024, 4, 2, 22, 0, tzinfo=timezone.utc)     # 04-03 00:00 CEST
    records = []
    t = start
    while t < end:
        local = t.astimezone(budapest)
        fixed = local.replace(tzinfo=timezone(local.utcoffset()))
        records.append(IntervalRecord(timestamp=fixed, import_kwh=0.1))
        t += STEP
    return records

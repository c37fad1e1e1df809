"""API test infrastructure -- async httpx client against the ASGI app."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def app():
    from app.main import create_app

    yield create_app()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _to_payload(records) -> list[dict]:
    return [
        {
            "timestamp": r.timestamp.isoformat(),
            "production_kw": r.production_kw,
            "import_kwh": r.import_kwh,
            "export_kwh": r.export_kwh,
        }
        for r in records
    ]


@pytest.fixture
def day_payload(summer_day) -> list[dict]:
    """One sunny day of records as JSON-ready dicts."""
    return _to_payload(summer_day)


@pytest.fixture
def week_payload(summer_week) -> list[dict]:
    return _to_payload(summer_week)


@pytest.fixture(scope="session")
def year_payload(year_2023) -> list[dict]:
    return _to_payload(year_2023)


@pytest.fixture
def unsorted_payload() -> list[dict]:
    t0 = datetime(2024, 6, 1, 12)
    return [
        {"timestamp": (t0 + timedelta(minutes=15)).isoformat(), "export_kwh": 1.0},
        {"timestamp": t0.isoformat(), "export_kwh": 1.0},
    ]

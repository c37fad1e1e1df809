"""Tests for batterysim.timeseries -- records, validation and time aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from batterysim.dispatch.simulator import simulate_dispatch
from batterysim.exceptions import IntervalSequenceError
from batterysim.timeseries.aggregation import (
    DailyBucketing,
    MonthlyBucketing,
    aggregate,
    energy_view,
    get_bucketing,
)
from batterysim.timeseries.records import (
    IntervalRecord,
    to_epoch_ms,
    validate_records,
)

STEP = timedelta(minutes=15)


# ======================================================================
# Records
# ======================================================================


class TestIntervalRecord:
    def test_naive_timestamp_read_as_utc(self):
        rec = IntervalRecord(datetime(2024, 1, 1))
        assert rec.timestamp_ms == 1704067200000

    def test_aware_timestamp(self):
        ts = datetime(2024, 1, 1, 1, 0, tzinfo=ZoneInfo("Europe/Budapest"))
        assert to_epoch_ms(ts) == 1704067200000

    def test_from_mapping(self):
        rec = IntervalRecord.from_mapping(
            {"timestamp": "2024-06-01T12:00:00", "production_kw": "3.5", "import_kwh": 0.2}
        )
        assert rec.timestamp == datetime(2024, 6, 1, 12)
        assert rec.production_kw == 3.5
        assert rec.import_kwh == 0.2
        assert rec.export_kwh == 0.0

    def test_to_dict_includes_epoch(self):
        data = IntervalRecord(datetime(2024, 1, 1), production_kw=1.0).to_dict()
        assert data["timestamp_ms"] == 1704067200000
        assert data["production_kw"] == 1.0

    def test_production_kwh(self):
        assert IntervalRecord(datetime(2024, 1, 1), production_kw=4.0).production_kwh() == 1.0


class TestValidateRecords:
    def test_accepts_contiguous_series(self, summer_day):
        assert validate_records(iter(summer_day)) == summer_day

    def test_rejects_unsorted(self):
        t = datetime(2024, 1, 1)
        records = [IntervalRecord(t + STEP), IntervalRecord(t)]
        with pytest.raises(IntervalSequenceError, match="ascending"):
            validate_records(records)

    def test_rejects_duplicates(self):
        t = datetime(2024, 1, 1)
        with pytest.raises(IntervalSequenceError):
            validate_records([IntervalRecord(t), IntervalRecord(t)])

    def test_rejects_non_finite(self):
        rec = IntervalRecord(datetime(2024, 1, 1), import_kwh=float("nan"))
        with pytest.raises(IntervalSequenceError, match="import_kwh"):
            validate_records([rec])

    def test_gap_is_only_logged(self, caplog):
        t = datetime(2024, 1, 1)
        records = [IntervalRecord(t), IntervalRecord(t + 4 * STEP)]
        assert len(validate_records(records)) == 2
        assert "cadence" in caplog.text


# ======================================================================
# Bucketing
# ======================================================================


class TestBucketing:
    def test_daily_slot(self):
        assert DailyBucketing().time_slot(datetime(2024, 3, 5, 13, 45)) == datetime(2024, 3, 5)

    def test_monthly_slot(self):
        assert MonthlyBucketing().time_slot(datetime(2024, 3, 5, 13, 45)) == datetime(2024, 3, 1)

    def test_slot_keeps_time_zone(self):
        tz = ZoneInfo("Europe/Budapest")
        slot = DailyBucketing().time_slot(datetime(2024, 7, 1, 0, 30, tzinfo=tz))
        assert slot == datetime(2024, 7, 1, tzinfo=tz)

    def test_unknown_bucketing(self):
        with pytest.raises(ValueError, match="weekly"):
            get_bucketing("weekly")


# ======================================================================
# aggregate()
# ======================================================================


def _rows(start: datetime, n: int, **values) -> list[dict]:
    return [{"timestamp": start + i * STEP, **values} for i in range(n)]


class TestAggregate:
    def test_daily_sums(self, summer_week):
        rows = aggregate(summer_week, "daily", {"sum": ["import_kwh", "export_kwh"]})
        assert len(rows) == 7
        assert [r["timestamp"] for r in rows] == [
            datetime(2024, 6, 1) + timedelta(days=d) for d in range(7)
        ]
        total_import = sum(r.import_kwh for r in summer_week)
        assert sum(r["import_kwh"] for r in rows) == pytest.approx(total_import)

    def test_sum_preserved_monthly(self, noisy_records):
        rows = aggregate(noisy_records, "monthly", {"sum": ["export_kwh"]})
        assert len(rows) == 1
        assert rows[0]["export_kwh"] == pytest.approx(sum(r.export_kwh for r in noisy_records))

    def test_average(self):
        records = _rows(datetime(2024, 1, 1), 4, battery_soc_percent=50.0)
        records[0]["battery_soc_percent"] = 10.0
        rows = aggregate(records, "daily", {"average": ["battery_soc_percent"]})
        assert rows[0]["battery_soc_percent"] == pytest.approx((10 + 50 * 3) / 4)

    def test_missing_field_counts_as_zero(self):
        records = _rows(datetime(2024, 1, 1), 4, battery_soc_percent=40.0, import_kwh=1.0)
        del records[1]["battery_soc_percent"]
        del records[2]["import_kwh"]
        rows = aggregate(
            records, "daily", {"sum": ["import_kwh"], "average": ["battery_soc_percent"]}
        )
        assert rows[0]["import_kwh"] == pytest.approx(3.0)
        assert rows[0]["battery_soc_percent"] == pytest.approx(120.0 / 4)

    def test_output_sorted_by_bucket(self):
        late = _rows(datetime(2024, 2, 10), 2, import_kwh=1.0)
        early = _rows(datetime(2024, 1, 10), 2, import_kwh=2.0)
        rows = aggregate(late + early, "monthly", {"sum": ["import_kwh"]})
        assert [r["timestamp"] for r in rows] == [datetime(2024, 1, 1), datetime(2024, 2, 1)]
        assert [r["import_kwh"] for r in rows] == [4.0, 2.0]
        assert rows[0]["timestamp_ms"] < rows[1]["timestamp_ms"]

    def test_empty_input(self):
        assert aggregate([], "daily", {"sum": ["import_kwh"]}) == []

    def test_local_midnight_buckets(self):
        tz = ZoneInfo("Europe/Budapest")
        start = datetime(2024, 6, 1, 23, 0, tzinfo=tz)
        rows = aggregate(_rows(start, 8, import_kwh=1.0), "daily", {"sum": ["import_kwh"]})
        assert [r["import_kwh"] for r in rows] == [4.0, 4.0]
        midnight_utc = datetime(2024, 5, 31, 22, 0, tzinfo=timezone.utc)
        assert rows[0]["timestamp_ms"] == to_epoch_ms(midnight_utc)

    def test_daily_buckets_across_dst_change(self, dst_week):
        rows = aggregate(dst_week, "daily", {"sum": ["import_kwh"]})
        assert [r["timestamp"].date().isoformat() for r in rows] == [
            "2024-03-30",
            "2024-03-31",
            "2024-04-01",
            "2024-04-02",
        ]
        # 2024-03-31 is 23 hours long.
        assert [r["import_kwh"] for r in rows] == pytest.approx([9.6, 9.2, 9.6, 9.6])
        assert rows[1]["timestamp"] == datetime(
            2024, 3, 31, tzinfo=timezone(timedelta(hours=1))
        )

    def test_monthly_buckets_across_dst_change(self, dst_week):
        rows = aggregate(dst_week, "monthly", {"sum": ["import_kwh"]})
        assert len(rows) == 2
        march, april = rows
        assert march["timestamp"] == datetime(2024, 3, 1, tzinfo=timezone(timedelta(hours=1)))
        assert march["import_kwh"] == pytest.approx(188 * 0.1)
        assert april["import_kwh"] == pytest.approx(192 * 0.1)

    def test_non_numeric_field_rejected(self):
        records = _rows(datetime(2024, 1, 1), 2, import_kwh=1.0)
        records[1]["import_kwh"] = "n/a"
        with pytest.raises(ValueError, match="not numeric"):
            aggregate(records, "daily", {"sum": ["import_kwh"]})

    def test_non_numeric_average_rejected(self):
        records = _rows(datetime(2024, 1, 1), 2, label="meter-1")
        with pytest.raises(ValueError, match="label"):
            aggregate(records, "daily", {"average": ["label"]})


# ======================================================================
# energy_view()
# ======================================================================


class TestEnergyView:
    def test_15min_passthrough(self, summer_day, default_config):
        simulated = simulate_dispatch(summer_day, default_config)
        assert energy_view(simulated, "15min") == simulated

    def test_daily_view(self, summer_week, default_config):
        simulated = simulate_dispatch(summer_week, default_config)
        rows = energy_view(simulated, "daily")
        assert len(rows) == 7
        solar_kwh = sum(r.production_kw * 0.25 for r in simulated[:96])
        assert rows[0]["production_kwh"] == pytest.approx(solar_kwh)
        assert rows[0]["production_kw"] == rows[0]["production_kwh"]
        assert rows[0]["grid_export_with_battery"] == pytest.approx(
            sum(r.grid_export_with_battery for r in simulated[:96])
        )
        soc = [r.battery_soc_percent for r in simulated[:96]]
        assert rows[0]["battery_soc_percent"] == pytest.approx(sum(soc) / 96)

    def test_monthly_view_of_plain_records(self, summer_week):
        rows = energy_view(summer_week, "monthly")
        assert len(rows) == 1
        # Plain records have no battery fields: they aggregate as zero.
        assert rows[0]["grid_import_with_battery"] == 0.0
        assert rows[0]["battery_soc_kwh"] == 0.0

    def test_empty(self):
        assert energy_view([], "daily") == []

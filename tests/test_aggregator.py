"""Unit tests for the hourly grouping logic."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from models.records import RawReading, SensorType
from services.aggregator import Aggregator

UTC = timezone.utc


def _reading(
    value: float,
    timestamp: datetime,
    sensor_type: SensorType = SensorType.temperature,
    device_id: str = "ESP32_1",
    unit: str = "°C",
) -> RawReading:
    """Helper to build deterministic sensor readings."""

    return RawReading(
        device_id=device_id,
        sensor_type=sensor_type,
        value=value,
        unit=unit,
        timestamp=timestamp,
    )


def test_aggregate_empty_iterable_returns_no_buckets() -> None:
    assert Aggregator().aggregate_hourly([], ZoneInfo("UTC")) == []


def test_aggregate_computes_statistics_per_hour() -> None:
    readings = [
        _reading(10.0, datetime(2025, 11, 2, 7, 5, tzinfo=UTC)),
        _reading(30.0, datetime(2025, 11, 2, 7, 40, tzinfo=UTC)),
        _reading(20.0, datetime(2025, 11, 2, 7, 59, 59, tzinfo=UTC)),
        _reading(5.0, datetime(2025, 11, 2, 8, 0, tzinfo=UTC)),
    ]

    buckets = Aggregator().aggregate_hourly(readings, ZoneInfo("UTC"))

    assert [bucket.hour for bucket in buckets] == [
        datetime(2025, 11, 2, 7, tzinfo=UTC),
        datetime(2025, 11, 2, 8, tzinfo=UTC),
    ]
    first = buckets[0]
    assert first.avg == 20.0
    assert first.min == 10.0
    assert first.max == 30.0
    assert first.samples == 3
    assert first.unit == "°C"
    assert buckets[1].samples == 1


def test_aggregate_separates_devices_and_sensors() -> None:
    moment = datetime(2025, 11, 2, 7, 15, tzinfo=UTC)
    readings = [
        _reading(21.0, moment, device_id="ESP32_2"),
        _reading(60.0, moment, sensor_type=SensorType.humidity, unit="%"),
        _reading(22.0, moment),
    ]

    buckets = Aggregator().aggregate_hourly(readings, ZoneInfo("UTC"))

    assert [(bucket.device_id, bucket.sensor_type) for bucket in buckets] == [
        ("ESP32_1", SensorType.humidity),
        ("ESP32_1", SensorType.temperature),
        ("ESP32_2", SensorType.temperature),
    ]


def test_aggregate_buckets_by_local_hour_with_fractional_offset() -> None:
    # 04:45Z is 10:15 in Kolkata (+05:30), so the local hour starts at 04:30Z.
    readings = [
        _reading(10.0, datetime(2025, 11, 3, 4, 45, tzinfo=UTC)),
        _reading(20.0, datetime(2025, 11, 3, 4, 20, tzinfo=UTC)),
    ]

    buckets = Aggregator().aggregate_hourly(readings, ZoneInfo("Asia/Kolkata"))

    assert [bucket.hour for bucket in buckets] == [
        datetime(2025, 11, 3, 3, 30, tzinfo=UTC),
        datetime(2025, 11, 3, 4, 30, tzinfo=UTC),
    ]


def test_aggregate_keeps_repeated_local_hour_apart_on_dst_fall_back() -> None:
    # 01:30 EDT and 01:30 EST on 2025-11-02 are different hours.
    readings = [
        _reading(10.0, datetime(2025, 11, 2, 5, 30, tzinfo=UTC)),
        _reading(20.0, datetime(2025, 11, 2, 6, 30, tzinfo=UTC)),
    ]

    buckets = Aggregator().aggregate_hourly(readings, ZoneInfo("America/New_York"))

    assert [bucket.hour for bucket in buckets] == [
        datetime(2025, 11, 2, 5, tzinfo=UTC),
        datetime(2025, 11, 2, 6, tzinfo=UTC),
    ]
    assert [bucket.avg for bucket in buckets] == [10.0, 20.0]


def test_aggregate_groups_by_unit() -> None:
    moment = datetime(2025, 11, 2, 7, 15, tzinfo=UTC)
    readings = [_reading(21.0, moment), _reading(70.0, moment, unit="°F")]

    buckets = Aggregator().aggregate_hourly(readings, ZoneInfo("UTC"))

    assert sorted(bucket.unit for bucket in buckets) == ["°C", "°F"]

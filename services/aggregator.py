"""Hourly grouping of raw sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List
from zoneinfo import ZoneInfo

from models.records import RawReading, SensorType
from services.timezones import truncate_to_hour


@dataclass(frozen=True)
class HourlyBucket:
    """Statistics for the readings of one device/sensor/unit within one local hour."""

    device_id: str
    sensor_type: SensorType
    hour: datetime
    unit: str
    avg: float
    min: float
    max: float
    samples: int


@dataclass
class _Accumulator:
    total: float = 0.0
    minimum: float | None = None
    maximum: float | None = None
    count: int = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1
        if self.minimum is None or value < self.minimum:
            self.minimum = value
        if self.maximum is None or value > self.maximum:
            self.maximum = value


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate_hourly(
        self, readings: Iterable[RawReading], zone: ZoneInfo
    ) -> List[HourlyBucket]:
        """Group readings by device, sensor, local hour in ``zone`` and unit."""

        groups: Dict[tuple[str, SensorType, datetime, str], _Accumulator] = {}
        for reading in readings:
            hour = truncate_to_hour(reading.timestamp, zone)
            key = (reading.device_id, reading.sensor_type, hour, reading.unit)
            groups.setdefault(key, _Accumulator()).add(reading.value)

        buckets = [
            HourlyBucket(
                device_id=device_id,
                sensor_type=sensor_type,
                hour=hour,
                unit=unit,
                avg=acc.total / acc.count,
                min=acc.minimum,
                max=acc.maximum,
                samples=acc.count,
            )
            for (device_id, sensor_type, hour, unit), acc in groups.items()
        ]
        buckets.sort(
            key=lambda bucket: (bucket.hour, bucket.device_id, bucket.sensor_type.value)
        )
        return buckets

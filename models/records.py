"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SensorType(str, Enum):
    """Sensor kinds a device can report. Declaration order is the display order."""

    temperature = "temperature"
    humidity = "humidity"
    soil_humidity = "soil_humidity"
    solar_radiation = "solar_radiation"


SENSOR_ORDER = {sensor: index for index, sensor in enumerate(SensorType)}


@dataclass(frozen=True, slots=True)
class RawReading:
    """A single sample as received from a device."""

    device_id: str
    sensor_type: SensorType
    value: float
    unit: str
    timestamp: datetime


@dataclass(slots=True)
class HourlyAggregate:
    """Statistics for one device/sensor over one local hour.

    ``hour`` is the UTC instant at which the local hour starts in the zone the
    aggregator was configured with.
    """

    device_id: str
    sensor_type: SensorType
    hour: datetime
    avg: float
    min: float
    max: float
    samples: int
    unit: str
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> tuple[str, SensorType, datetime]:
        return (self.device_id, self.sensor_type, self.hour)

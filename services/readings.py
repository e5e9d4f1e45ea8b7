"""Raw reading ingestion from CSV and queries over raw readings."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Dict, List, Optional

from app.schemas import IngestError, IngestResponse, LatestReading, SensorSummaryEntry
from models.records import RawReading, SensorType
from services.errors import DateParseError
from services.timezones import parse_instant, resolve_zone
from settings import get_settings
from storage.readings import ReadingStore, build_default_reading_store

logger = logging.getLogger(__name__)

DEFAULT_RAW_DATA_LIMIT = 100

_COLUMN_ALIASES = {
    "device_id": ("device_id", "deviceid"),
    "sensor_type": ("sensor_type", "sensortype"),
    "value": ("value",),
    "unit": ("unit", "units"),
    "timestamp": ("timestamp",),
}


@dataclass
class ReadingFilters:
    device_id: Optional[str] = None
    sensor_type: Optional[SensorType] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    limit: Optional[int] = None


def normalize_device_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed.upper() if trimmed else None


class ReadingService:
    """Stores uploaded readings and answers queries over the raw samples."""

    def __init__(self, store: ReadingStore, default_timezone: str = "America/Bogota") -> None:
        self.store = store
        self.default_timezone = default_timezone
        self.zone = resolve_zone(None, default_timezone)

    def ingest_csv(self, contents: bytes | str, timezone: Optional[str] = None) -> IngestResponse:
        """Parse a CSV of readings, store the valid rows and report the rest.

        Timestamps without an offset are read in ``timezone`` (or the report zone).
        """
        if isinstance(contents, bytes):
            contents = contents.decode("utf-8")
        if not contents.strip():
            raise ValueError("Uploaded file is empty.")

        zone = resolve_zone(timezone, self.default_timezone)
        reader = csv.DictReader(io.StringIO(contents))
        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        normalized = {name.lower().strip(): name for name in reader.fieldnames}
        columns: Dict[str, str] = {}
        for column, aliases in _COLUMN_ALIASES.items():
            found = next((normalized[alias] for alias in aliases if alias in normalized), None)
            if found is not None:
                columns[column] = found
        missing = sorted(set(_COLUMN_ALIASES) - columns.keys())
        if missing:
            raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

        errors: List[IngestError] = []
        readings: List[RawReading] = []
        for row_number, row in enumerate(reader, start=2):
            raw = {column: (row.get(name) or "").strip() for column, name in columns.items()}

            empty = next((column for column in _COLUMN_ALIASES if not raw[column]), None)
            if empty is not None:
                errors.append(IngestError(row_number=row_number, reason=f"missing {empty}"))
                continue

            try:
                sensor_type = SensorType(raw["sensor_type"].lower())
            except ValueError:
                errors.append(IngestError(row_number=row_number, reason="unknown sensor_type"))
                continue

            try:
                timestamp = parse_instant(raw["timestamp"], zone)
            except DateParseError:
                errors.append(IngestError(row_number=row_number, reason="invalid timestamp"))
                continue

            try:
                value = float(raw["value"])
            except ValueError:
                errors.append(IngestError(row_number=row_number, reason="invalid numeric value"))
                continue

            readings.append(
                RawReading(
                    device_id=normalize_device_id(raw["device_id"]),
                    sensor_type=sensor_type,
                    value=value,
                    unit=raw["unit"],
                    timestamp=timestamp,
                )
            )

        inserted = self.store.insert_many(readings)
        logger.info(
            "Readings ingested",
            extra={"row_count": inserted, "error_count": len(errors) or None},
        )
        return IngestResponse(inserted=inserted, errors=errors)

    def get_latest_readings(self, device_id: Optional[str] = None) -> List[LatestReading]:
        return [
            LatestReading(
                device_id=reading.device_id,
                sensor_type=reading.sensor_type,
                value=reading.value,
                unit=reading.unit,
                timestamp=reading.timestamp,
            )
            for reading in self.store.latest(device_id=normalize_device_id(device_id))
        ]

    def get_sensor_summary(self, filters: ReadingFilters) -> List[SensorSummaryEntry]:
        """Per device/sensor statistics over the raw readings, ``from``/``to`` inclusive."""
        readings = self._find(filters)

        grouped: Dict[tuple[str, SensorType], List[RawReading]] = {}
        for reading in readings:
            grouped.setdefault((reading.device_id, reading.sensor_type), []).append(reading)

        entries = []
        for (device_id, sensor_type) in sorted(grouped, key=lambda key: (key[0], key[1].value)):
            series = grouped[(device_id, sensor_type)]
            values = [reading.value for reading in series]
            entries.append(
                SensorSummaryEntry(
                    device_id=device_id,
                    sensor_type=sensor_type,
                    unit=series[-1].unit,
                    samples=len(series),
                    min_value=min(values),
                    max_value=max(values),
                    average_value=sum(values) / len(values),
                    first_timestamp=series[0].timestamp,
                    last_timestamp=series[-1].timestamp,
                    latest_value=series[-1].value,
                )
            )
        return entries

    def get_raw_readings(self, filters: ReadingFilters) -> List[LatestReading]:
        """Newest readings first, capped at ``limit`` (100 by default)."""
        limit = filters.limit or DEFAULT_RAW_DATA_LIMIT
        readings = list(reversed(self._find(filters)))[:limit]
        return [
            LatestReading(
                device_id=reading.device_id,
                sensor_type=reading.sensor_type,
                value=reading.value,
                unit=reading.unit,
                timestamp=reading.timestamp,
            )
            for reading in readings
        ]

    def _find(self, filters: ReadingFilters) -> List[RawReading]:
        return self.store.find(
            start=filters.start,
            end=filters.end,
            device_id=normalize_device_id(filters.device_id),
            sensor_type=filters.sensor_type,
            include_end=True,
        )


@lru_cache
def build_default_reading_service() -> ReadingService:
    return ReadingService(
        store=build_default_reading_store(),
        default_timezone=get_settings().report_timezone,
    )

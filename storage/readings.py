from __future__ import annotations

import json
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from models.records import RawReading, SensorType
from settings import get_settings


class ReadingStore:
    """Append-only collection of raw sensor readings."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._readings: List[RawReading] = []
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert_many(self, readings: Iterable[RawReading]) -> int:
        normalized = [_normalize(reading) for reading in readings]
        if not normalized:
            return 0
        with self._lock:
            self._readings.extend(normalized)
            self._persist()
        return len(normalized)

    def find(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        device_id: Optional[str] = None,
        sensor_type: Optional[SensorType] = None,
        include_end: bool = False,
    ) -> list[RawReading]:
        """Return readings in ``[start, end)`` (or ``[start, end]``) ordered by timestamp."""

        with self._lock:
            snapshot = list(self._readings)

        matches = []
        for reading in snapshot:
            if device_id is not None and reading.device_id != device_id:
                continue
            if sensor_type is not None and reading.sensor_type != sensor_type:
                continue
            if start is not None and reading.timestamp < start:
                continue
            if end is not None:
                if include_end and reading.timestamp > end:
                    continue
                if not include_end and reading.timestamp >= end:
                    continue
            matches.append(reading)
        matches.sort(key=lambda reading: reading.timestamp)
        return matches

    def latest(self, device_id: Optional[str] = None) -> list[RawReading]:
        """Most recent reading per device and sensor type."""

        latest: Dict[tuple[str, SensorType], RawReading] = {}
        for reading in self.find(device_id=device_id):
            latest[(reading.device_id, reading.sensor_type)] = reading
        return [
            latest[key]
            for key in sorted(latest, key=lambda item: (item[0], item[1].value))
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [_to_json(reading) for reading in self._readings]
        self.persistence_path.write_text(json.dumps(payload, indent=2))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        self._readings = [_from_json(item) for item in data]


def _normalize(reading: RawReading) -> RawReading:
    if reading.timestamp.tzinfo is None:
        raise ValueError("Reading timestamps must be timezone-aware.")
    return RawReading(
        device_id=reading.device_id,
        sensor_type=SensorType(reading.sensor_type),
        value=float(reading.value),
        unit=reading.unit,
        timestamp=reading.timestamp.astimezone(timezone.utc),
    )


def _to_json(reading: RawReading) -> Dict[str, Any]:
    return {
        "deviceId": reading.device_id,
        "sensorType": reading.sensor_type.value,
        "value": reading.value,
        "unit": reading.unit,
        "timestamp": reading.timestamp.isoformat(),
    }


def _from_json(payload: Dict[str, Any]) -> RawReading:
    return RawReading(
        device_id=payload["deviceId"],
        sensor_type=SensorType(payload["sensorType"]),
        value=float(payload["value"]),
        unit=payload["unit"],
        timestamp=datetime.fromisoformat(payload["timestamp"]),
    )


@lru_cache
def build_default_reading_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingStore:
    settings = get_settings()
    store_name = settings.readings_store_name if name is None else name
    store_path = settings.readings_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(name=store_name, persistence_path=persistence)

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from models.records import HourlyAggregate, SensorType
from settings import get_settings

AggregateKey = tuple[str, SensorType, datetime]


@dataclass(frozen=True)
class UpsertOp:
    """Set the statistics of one (device, sensor, hour) row, inserting it if missing."""

    device_id: str
    sensor_type: SensorType
    hour: datetime
    avg: float
    min: float
    max: float
    samples: int
    unit: str
    timestamp: datetime


@dataclass(frozen=True)
class BulkWriteError:
    index: int
    key: tuple[str, str, str]
    reason: str


@dataclass
class BulkWriteResult:
    upserted_count: int = 0
    modified_count: int = 0
    errors: List[BulkWriteError] = field(default_factory=list)


class HourlyAggregateStore:
    """Hourly statistics keyed uniquely by (device, sensor, hour).

    Each upsert takes the store lock for its own key only, so overlapping
    recomputations interleave but can never create two rows for one bucket.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._rows: Dict[AggregateKey, HourlyAggregate] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def bulk_upsert(self, ops: Iterable[UpsertOp], ordered: bool = False) -> BulkWriteResult:
        """Apply ``ops`` one key at a time.

        Unordered writes record a failing op and carry on with the rest; ordered
        writes stop at the first failure.
        """

        result = BulkWriteResult()
        for index, op in enumerate(ops):
            try:
                inserted = self._upsert_one(op)
            except ValueError as exc:
                result.errors.append(
                    BulkWriteError(
                        index=index,
                        key=(op.device_id, str(op.sensor_type), str(op.hour)),
                        reason=str(exc),
                    )
                )
                if ordered:
                    break
                continue
            if inserted:
                result.upserted_count += 1
            else:
                result.modified_count += 1

        with self._lock:
            self._persist()
        return result

    def get(
        self, device_id: str, sensor_type: SensorType, hour: datetime
    ) -> Optional[HourlyAggregate]:
        key = (device_id, SensorType(sensor_type), hour.astimezone(timezone.utc))
        with self._lock:
            row = self._rows.get(key)
            return replace(row) if row is not None else None

    def find(
        self,
        device_id: Optional[str] = None,
        sensor_type: Optional[SensorType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_end: bool = False,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[HourlyAggregate]:
        """Rows matching the filters, sorted by hour, device and sensor."""

        matches = self._matching(device_id, sensor_type, start, end, include_end)
        matches.sort(key=lambda row: (row.hour, row.device_id, row.sensor_type.value))
        stop = None if limit is None else skip + limit
        return matches[skip:stop]

    def count(
        self,
        device_id: Optional[str] = None,
        sensor_type: Optional[SensorType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_end: bool = False,
    ) -> int:
        return len(self._matching(device_id, sensor_type, start, end, include_end))

    def _matching(
        self,
        device_id: Optional[str],
        sensor_type: Optional[SensorType],
        start: Optional[datetime],
        end: Optional[datetime],
        include_end: bool,
    ) -> list[HourlyAggregate]:
        with self._lock:
            rows = [replace(row) for row in self._rows.values()]

        matches = []
        for row in rows:
            if device_id is not None and row.device_id != device_id:
                continue
            if sensor_type is not None and row.sensor_type != sensor_type:
                continue
            if start is not None and row.hour < start:
                continue
            if end is not None and (row.hour > end if include_end else row.hour >= end):
                continue
            matches.append(row)
        return matches

    def _upsert_one(self, op: UpsertOp) -> bool:
        if op.hour.tzinfo is None:
            raise ValueError("hour must be timezone-aware")
        if op.samples < 1:
            raise ValueError("samples must be >= 1")
        hour = op.hour.astimezone(timezone.utc).replace(second=0, microsecond=0)
        key = (op.device_id, SensorType(op.sensor_type), hour)

        with self._lock:
            existing = self._rows.get(key)
            self._rows[key] = HourlyAggregate(
                device_id=op.device_id,
                sensor_type=SensorType(op.sensor_type),
                hour=hour,
                avg=op.avg,
                min=op.min,
                max=op.max,
                samples=op.samples,
                unit=op.unit,
                created_at=existing.created_at if existing else op.timestamp,
                updated_at=op.timestamp,
            )
        return existing is None

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [_to_json(row) for row in self._rows.values()]
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        for item in data:
            row = _from_json(item)
            self._rows[row.key] = row


def _to_json(row: HourlyAggregate) -> Dict[str, Any]:
    return {
        "deviceId": row.device_id,
        "sensorType": row.sensor_type.value,
        "hour": row.hour.isoformat(),
        "avg": row.avg,
        "min": row.min,
        "max": row.max,
        "samples": row.samples,
        "units": row.unit,
        "createdAt": row.created_at.isoformat(),
        "updatedAt": row.updated_at.isoformat(),
    }


def _from_json(payload: Dict[str, Any]) -> HourlyAggregate:
    return HourlyAggregate(
        device_id=payload["deviceId"],
        sensor_type=SensorType(payload["sensorType"]),
        hour=datetime.fromisoformat(payload["hour"]),
        avg=float(payload["avg"]),
        min=float(payload["min"]),
        max=float(payload["max"]),
        samples=int(payload["samples"]),
        unit=payload["units"],
        created_at=datetime.fromisoformat(payload["createdAt"]),
        updated_at=datetime.fromisoformat(payload["updatedAt"]),
    )


@lru_cache
def build_default_hourly_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> HourlyAggregateStore:
    settings = get_settings()
    store_name = settings.hourly_store_name if name is None else name
    store_path = settings.hourly_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return HourlyAggregateStore(name=store_name, persistence_path=persistence)

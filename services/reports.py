"""Hourly aggregation and the reports composed from hourly aggregates."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.schemas import (
    DailyReportPayload,
    DailyReportRow,
    HourlyReportEntry,
    HourlyReportResult,
    HumiditySummary,
    MonthlyDay,
    MonthlyReportPayload,
    Pagination,
    RadiationSummary,
    ReportRange,
    SensorAverage,
    TemperatureSummary,
    WeeklyAveragesPayload,
    WeeklyDay,
)
from datastore.hourly import HourlyAggregateStore, UpsertOp, build_default_hourly_store
from models.records import SENSOR_ORDER, HourlyAggregate, SensorType
from services.aggregator import Aggregator
from services.errors import FilterConflictError, RangeInvalidError, RangeTooLargeError
from services.timezones import (
    days_in_month,
    ensure_utc,
    local_day_range,
    local_month_range,
    mean,
    resolve_zone,
    round_metric,
    to_zoned_iso,
)
from settings import get_settings
from storage.readings import ReadingStore, build_default_reading_store

logger = logging.getLogger(__name__)

HOURS_IN_DAY = 24
DEFAULT_HOURLY_LIMIT = 500
DEFAULT_WEEKLY_DAYS = 7

_UTC = timezone.utc

WEEKDAY_NAMES = {
    "es": ("Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"),
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
}


@dataclass
class HourlyReportFilters:
    device_id: Optional[str] = None
    sensor_type: Optional[SensorType] = None
    date: Optional[date] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    timezone: Optional[str] = None
    limit: Optional[int] = None
    page: Optional[int] = None


class ReportService:
    """Rolls raw readings up into hourly aggregates and composes reports from them."""

    def __init__(
        self,
        readings: ReadingStore,
        hourly: HourlyAggregateStore,
        aggregator: Aggregator,
        default_timezone: str = "America/Bogota",
        max_range_days: int = 92,
        locale: str = "es",
    ) -> None:
        self.readings = readings
        self.hourly = hourly
        self.aggregator = aggregator
        self.default_timezone = default_timezone
        self.max_range_days = max_range_days
        self.locale = locale
        self.report_zone = resolve_zone(None, default_timezone)

    def zone_for(self, name: Optional[str]) -> ZoneInfo:
        return resolve_zone(name, self.default_timezone)

    def upsert_hourly_averages(
        self,
        start: datetime,
        end: datetime,
        device_id: Optional[str] = None,
        sensor_type: Optional[SensorType] = None,
    ) -> Dict[str, int]:
        """Recompute and store the hourly aggregates of readings in ``[start, end)``.

        Buckets are local hours of the configured report zone. Re-running the
        same window overwrites each bucket with the same values.
        """
        start, end = self._ensure_range_is_valid(start, end)

        readings = self.readings.find(
            start=start, end=end, device_id=device_id, sensor_type=sensor_type
        )
        buckets = self.aggregator.aggregate_hourly(readings, self.report_zone)
        if not buckets:
            return {"upserted": 0}

        now = _utcnow()
        ops = [
            UpsertOp(
                device_id=bucket.device_id,
                sensor_type=bucket.sensor_type,
                hour=bucket.hour,
                avg=bucket.avg,
                min=bucket.min,
                max=bucket.max,
                samples=bucket.samples,
                unit=bucket.unit,
                timestamp=now,
            )
            for bucket in buckets
        ]
        result = self.hourly.bulk_upsert(ops, ordered=False)
        if result.errors:
            logger.warning(
                "Some hourly aggregates could not be stored",
                extra={"error_count": len(result.errors), "reason": result.errors[0].reason},
            )

        upserted = result.upserted_count + result.modified_count
        logger.info(
            "Hourly aggregates upserted",
            extra={
                "window_from": start.isoformat(),
                "window_to": end.isoformat(),
                "device_id": device_id,
                "sensor_type": sensor_type.value if sensor_type else None,
                "upserted": upserted,
            },
        )
        return {"upserted": upserted}

    def explain_hourly_aggregation(
        self,
        start: datetime,
        end: datetime,
        device_id: Optional[str] = None,
        sensor_type: Optional[SensorType] = None,
    ) -> Dict[str, Any]:
        """Describe what ``upsert_hourly_averages`` would do for the window, without writing."""
        start, end = self._ensure_range_is_valid(start, end)
        readings = self.readings.find(
            start=start, end=end, device_id=device_id, sensor_type=sensor_type
        )
        buckets = self.aggregator.aggregate_hourly(readings, self.report_zone)
        match: Dict[str, Any] = {"timestamp": {"gte": start.isoformat(), "lt": end.isoformat()}}
        if device_id:
            match["deviceId"] = device_id
        if sensor_type:
            match["sensorType"] = sensor_type.value
        return {
            "match": match,
            "timezone": self.default_timezone,
            "group_by": ["deviceId", "sensorType", "hour", "unit"],
            "readings": len(readings),
            "buckets": len(buckets),
        }

    def get_hourly_report(self, filters: HourlyReportFilters) -> HourlyReportResult:
        zone = self.zone_for(filters.timezone)
        start, end = self._hourly_window(filters, zone)

        limit = filters.limit if filters.limit and filters.limit > 0 else DEFAULT_HOURLY_LIMIT
        page = filters.page if filters.page and filters.page > 0 else 1
        skip = (page - 1) * limit

        query = {
            "device_id": filters.device_id or None,
            "sensor_type": filters.sensor_type,
            "start": start,
            "end": end,
        }
        rows = self.hourly.find(**query, skip=skip, limit=limit)
        total = self.hourly.count(**query)

        data = [
            HourlyReportEntry(
                device_id=row.device_id,
                sensor_type=row.sensor_type,
                hour=to_zoned_iso(row.hour, zone),
                avg=round_metric(row.avg),
                min=round_metric(row.min),
                max=round_metric(row.max),
                samples=row.samples,
                units=row.unit,
            )
            for row in rows
        ]
        pages = max(1, math.ceil(total / limit))
        return HourlyReportResult(
            data=data,
            pagination=Pagination(total=total, limit=limit, page=page, pages=pages),
        )

    def get_daily_report(
        self, device_id: str, local_date: date, timezone: Optional[str] = None
    ) -> DailyReportPayload:
        """Build the 24-row breakdown of one local day with its temperature extremes."""
        zone = self.zone_for(timezone)
        start, end = local_day_range(local_date, zone)
        docs = self.hourly.find(device_id=device_id, start=start, end=end)

        rows = [DailyReportRow(hour=index) for index in range(HOURS_IN_DAY)]
        for doc in docs:
            row = rows[doc.hour.astimezone(zone).hour]
            value = round_metric(doc.avg)
            if doc.sensor_type is SensorType.temperature:
                row.temperature_avg = value
            elif doc.sensor_type is SensorType.humidity:
                row.humidity_avg = value
            elif doc.sensor_type is SensorType.solar_radiation:
                row.solar_radiation_avg = value

        temperatures = [row.temperature_avg for row in rows if row.temperature_avg is not None]
        humidities = [row.humidity_avg for row in rows if row.humidity_avg is not None]
        radiation = [row.solar_radiation_avg for row in rows if row.solar_radiation_avg is not None]

        tmax = max(temperatures) if temperatures else None
        tmin = min(temperatures) if temperatures else None
        _mark_temperature_extremes(rows, tmax, tmin)

        return DailyReportPayload(
            device_id=device_id,
            date=local_date.isoformat(),
            timezone=zone.key,
            rows=rows,
            temperature=TemperatureSummary(
                tmax=round_metric(tmax),
                tmin=round_metric(tmin),
                tpro=round_metric(mean(temperatures)),
            ),
            humidity=HumiditySummary(hpro=round_metric(mean(humidities))),
            radiation=RadiationSummary(
                rad_tot=round_metric(sum(radiation)) if radiation else None,
                rad_pro=round_metric(mean(radiation)),
                rad_max=round_metric(max(radiation)) if radiation else None,
            ),
        )

    def get_monthly_report(
        self, device_id: str, year: int, month: int, timezone: Optional[str] = None
    ) -> MonthlyReportPayload:
        """Summarize each calendar day of the month from its hourly averages."""
        zone = self.zone_for(timezone)
        start, end = local_month_range(year, month, zone)
        docs = self.hourly.find(device_id=device_id, start=start, end=end)

        buckets: Dict[int, Dict[SensorType, List[float]]] = defaultdict(lambda: defaultdict(list))
        for doc in docs:
            buckets[doc.hour.astimezone(zone).day][doc.sensor_type].append(doc.avg)

        days = []
        for day_number in range(1, days_in_month(year, month) + 1):
            bucket = buckets.get(day_number, {})
            temperatures = bucket.get(SensorType.temperature, [])
            humidities = bucket.get(SensorType.humidity, [])
            radiation = bucket.get(SensorType.solar_radiation, [])
            days.append(
                MonthlyDay(
                    day=day_number,
                    rad_tot=round_metric(sum(radiation)) if radiation else None,
                    rad_pro=round_metric(mean(radiation)),
                    rad_max=round_metric(max(radiation)) if radiation else None,
                    hr=round_metric(mean(humidities)),
                    tmax=round_metric(max(temperatures)) if temperatures else None,
                    tmin=round_metric(min(temperatures)) if temperatures else None,
                    tpro=round_metric(mean(temperatures)),
                )
            )

        return MonthlyReportPayload(
            device_id=device_id, year=year, month=month, timezone=zone.key, days=days
        )

    def get_weekly_sensor_averages(
        self,
        device_id: str,
        days: int = DEFAULT_WEEKLY_DAYS,
        reference_date: Optional[datetime] = None,
        timezone: Optional[str] = None,
    ) -> WeeklyAveragesPayload:
        """Samples-weighted averages over the trailing ``days`` window.

        The window is ``[reference - days, reference]``; the daily breakdown
        covers the ``days`` local calendar days ending on the reference day.
        """
        if days < 1:
            raise RangeInvalidError("days must be >= 1.")
        zone = self.zone_for(timezone)
        reference = ensure_utc(reference_date) if reference_date else _utcnow()
        local_reference = reference.astimezone(zone)
        window_start = (local_reference - timedelta(days=days)).astimezone(_UTC)

        docs = self.hourly.find(
            device_id=device_id, start=window_start, end=reference, include_end=True
        )

        by_local_date: Dict[date, List[HourlyAggregate]] = defaultdict(list)
        for doc in docs:
            by_local_date[doc.hour.astimezone(zone).date()].append(doc)

        names = WEEKDAY_NAMES.get(self.locale, WEEKDAY_NAMES["es"])
        daily = []
        for offset in range(days - 1, -1, -1):
            day = local_reference.date() - timedelta(days=offset)
            day_start, _ = local_day_range(day, zone)
            weekday = day.isoweekday()
            daily.append(
                WeeklyDay(
                    date=to_zoned_iso(day_start, zone),
                    weekday=weekday,
                    weekday_name=names[weekday - 1],
                    sensors=_weighted_averages(by_local_date.get(day, [])),
                )
            )

        return WeeklyAveragesPayload(
            device_id=device_id,
            days=days,
            timezone=zone.key,
            range=ReportRange(
                from_=to_zoned_iso(window_start, zone), to=to_zoned_iso(reference, zone)
            ),
            sensors=_weighted_averages(docs),
            daily=daily,
        )

    def _ensure_range_is_valid(self, start: datetime, end: datetime) -> tuple[datetime, datetime]:
        start, end = ensure_utc(start), ensure_utc(end)
        if start >= end:
            raise RangeInvalidError("Invalid date range: 'from' must be earlier than 'to'.")
        if end - start > timedelta(days=self.max_range_days):
            raise RangeTooLargeError(
                f"The maximum allowed range is {self.max_range_days} days."
            )
        return start, end

    def _hourly_window(
        self, filters: HourlyReportFilters, zone: ZoneInfo
    ) -> tuple[Optional[datetime], Optional[datetime]]:
        has_start = filters.start is not None
        has_end = filters.end is not None
        if filters.date is not None:
            if has_start or has_end:
                raise FilterConflictError("Use either 'date' or 'from'/'to', not both.")
            return local_day_range(filters.date, zone)
        if has_start != has_end:
            raise FilterConflictError("Both 'from' and 'to' must be provided together.")
        if has_start:
            return self._ensure_range_is_valid(filters.start, filters.end)
        return None, None


def _utcnow() -> datetime:
    return datetime.now(_UTC)


def _mark_temperature_extremes(
    rows: Iterable[DailyReportRow], tmax: Optional[float], tmin: Optional[float]
) -> None:
    # Every row equal to an extreme is flagged, not just the first one.
    for row in rows:
        if row.temperature_avg is None:
            continue
        if tmax is not None and row.temperature_avg == tmax:
            row.is_tmax = True
        if tmin is not None and row.temperature_avg == tmin:
            row.is_tmin = True


def _weighted_averages(docs: Iterable[HourlyAggregate]) -> List[SensorAverage]:
    weighted: Dict[SensorType, float] = defaultdict(float)
    samples: Dict[SensorType, int] = defaultdict(int)
    units: Dict[SensorType, str] = {}
    for doc in docs:
        weighted[doc.sensor_type] += doc.avg * doc.samples
        samples[doc.sensor_type] += doc.samples
        units.setdefault(doc.sensor_type, doc.unit)

    averages = []
    for sensor_type in sorted(units, key=SENSOR_ORDER.__getitem__):
        if samples[sensor_type] <= 0:
            continue
        averages.append(
            SensorAverage(
                sensor_type=sensor_type,
                average=round_metric(weighted[sensor_type] / samples[sensor_type]),
                samples=samples[sensor_type],
                units=units[sensor_type],
            )
        )
    return averages


@lru_cache
def build_default_report_service() -> ReportService:
    """Factory that wires the report service with the default stores."""
    settings = get_settings()
    return ReportService(
        readings=build_default_reading_store(),
        hourly=build_default_hourly_store(),
        aggregator=Aggregator(),
        default_timezone=settings.report_timezone,
        max_range_days=settings.max_range_days,
        locale=settings.report_locale,
    )

"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from app.schemas import (
    DailyReportPayload,
    HourlyReportResult,
    IngestResponse,
    LatestReading,
    MonthlyReportPayload,
    RecalculateRequest,
    RecalculateResponse,
    SensorSummaryEntry,
    WeeklyAveragesPayload,
)
from models.records import SensorType
from services.readings import ReadingFilters, ReadingService, build_default_reading_service
from services.reports import HourlyReportFilters, ReportService, build_default_report_service
from services.timezones import parse_instant, parse_local_date

router = APIRouter()

MAX_HOURLY_LIMIT = 2000


def get_report_service() -> ReportService:
    return build_default_report_service()


def get_reading_service() -> ReadingService:
    return build_default_reading_service()


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get(
    "/reports/hourly",
    response_model=HourlyReportResult,
    response_model_exclude_none=True,
    summary="Paginated hourly aggregates rendered in the requested timezone.",
)
def hourly_report(
    device_id: Optional[str] = Query(None, alias="deviceId", min_length=1),
    sensor_type: Optional[SensorType] = Query(None, alias="sensorType"),
    date: Optional[str] = Query(None, description="Local date, YYYY-MM-DD."),
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    timezone: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, gt=0, le=MAX_HOURLY_LIMIT),
    page: Optional[int] = Query(None, gt=0),
    service: ReportService = Depends(get_report_service),
) -> HourlyReportResult:
    try:
        zone = service.zone_for(timezone)
        filters = HourlyReportFilters(
            device_id=device_id.strip() if device_id else None,
            sensor_type=sensor_type,
            date=parse_local_date(date) if date else None,
            start=parse_instant(from_, zone) if from_ else None,
            end=parse_instant(to, zone) if to else None,
            timezone=timezone,
            limit=limit,
            page=page,
        )
        return service.get_hourly_report(filters)
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.post(
    "/reports/hourly/recalculate",
    response_model=RecalculateResponse,
    summary="Recompute hourly aggregates for a time window.",
)
def recalculate_hourly(
    payload: RecalculateRequest,
    service: ReportService = Depends(get_report_service),
) -> RecalculateResponse:
    try:
        zone = service.zone_for(payload.timezone)
        result = service.upsert_hourly_averages(
            parse_instant(payload.from_, zone),
            parse_instant(payload.to, zone),
            device_id=(payload.device_id or "").strip() or None,
            sensor_type=payload.sensor_type,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return RecalculateResponse(
        message="Hourly aggregates recalculated.", upserted=result["upserted"]
    )


@router.get(
    "/reports/daily",
    response_model=DailyReportPayload,
    response_model_exclude_none=True,
    summary="Hour-by-hour report of one local day for a device.",
)
def daily_report(
    device_id: str = Query(..., alias="deviceId", min_length=1),
    date: str = Query(..., description="Local date, YYYY-MM-DD."),
    timezone: Optional[str] = Query(None),
    service: ReportService = Depends(get_report_service),
) -> DailyReportPayload:
    try:
        return service.get_daily_report(device_id.strip(), parse_local_date(date), timezone)
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.get(
    "/reports/monthly",
    response_model=MonthlyReportPayload,
    response_model_exclude_none=True,
    summary="One summary row per calendar day of a month.",
)
def monthly_report(
    device_id: str = Query(..., alias="deviceId", min_length=1),
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    timezone: Optional[str] = Query(None),
    service: ReportService = Depends(get_report_service),
) -> MonthlyReportPayload:
    try:
        return service.get_monthly_report(device_id.strip(), year, month, timezone)
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.get(
    "/reports/weekly",
    response_model=WeeklyAveragesPayload,
    response_model_exclude_none=True,
    summary="Samples-weighted sensor averages over the trailing days.",
)
def weekly_averages(
    device_id: str = Query(..., alias="deviceId", min_length=1),
    days: int = Query(7, ge=1, le=30),
    timezone: Optional[str] = Query(None),
    service: ReportService = Depends(get_report_service),
) -> WeeklyAveragesPayload:
    try:
        return service.get_weekly_sensor_averages(device_id.strip(), days=days, timezone=timezone)
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    summary="Upload a CSV file of raw sensor readings.",
)
async def upload_readings(
    file: UploadFile = File(..., description="CSV with device_id, sensor_type, value, unit, timestamp."),
    timezone: Optional[str] = Query(None),
    service: ReadingService = Depends(get_reading_service),
) -> IngestResponse:
    contents = await file.read()
    try:
        return service.ingest_csv(contents, timezone=timezone)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    finally:
        await file.close()


@router.get(
    "/readings/latest",
    response_model=List[LatestReading],
    summary="Latest reading per device and sensor type.",
)
def latest_readings(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    service: ReadingService = Depends(get_reading_service),
) -> List[LatestReading]:
    return service.get_latest_readings(device_id)


def _reading_filters(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    sensor_type: Optional[SensorType] = Query(None, alias="sensorType"),
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, gt=0),
    service: ReadingService = Depends(get_reading_service),
) -> ReadingFilters:
    try:
        zone = service.zone
        return ReadingFilters(
            device_id=device_id,
            sensor_type=sensor_type,
            start=parse_instant(from_, zone) if from_ else None,
            end=parse_instant(to, zone) if to else None,
            limit=limit,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.get(
    "/readings/report",
    response_model=List[SensorSummaryEntry],
    summary="Statistics over raw readings per device and sensor type.",
)
def readings_report(
    filters: ReadingFilters = Depends(_reading_filters),
    service: ReadingService = Depends(get_reading_service),
) -> List[SensorSummaryEntry]:
    return service.get_sensor_summary(filters)


@router.get(
    "/readings/raw",
    response_model=List[LatestReading],
    summary="Raw readings, newest first.",
)
def raw_readings(
    filters: ReadingFilters = Depends(_reading_filters),
    service: ReadingService = Depends(get_reading_service),
) -> List[LatestReading]:
    return service.get_raw_readings(filters)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}

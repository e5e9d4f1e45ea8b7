"""Pydantic schemas for the HTTP API layer.

Field names are snake_case in Python and serialize under the camelCase (or
report-specific) aliases clients consume. Optional metrics that have no data
are ``None`` and are dropped from responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import SensorType


class _AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HourlyReportEntry(_AliasedModel):
    """One hourly aggregate rendered in the requested timezone."""

    device_id: str = Field(..., alias="deviceId")
    sensor_type: SensorType = Field(..., alias="sensorType")
    hour: str = Field(..., description="Start of the hour, ISO-8601 in the requested zone.")
    avg: float
    min: float
    max: float
    samples: int = Field(..., ge=1)
    units: str


class Pagination(BaseModel):
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    page: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)


class HourlyReportResult(BaseModel):
    data: List[HourlyReportEntry] = Field(default_factory=list)
    pagination: Pagination


class DailyReportRow(_AliasedModel):
    hour: int = Field(..., ge=0, le=23)
    solar_radiation_avg: Optional[float] = None
    humidity_avg: Optional[float] = None
    temperature_avg: Optional[float] = None
    is_tmax: Optional[bool] = Field(default=None, alias="isTmax")
    is_tmin: Optional[bool] = Field(default=None, alias="isTmin")


class TemperatureSummary(BaseModel):
    tmax: Optional[float] = None
    tmin: Optional[float] = None
    tpro: Optional[float] = None


class HumiditySummary(BaseModel):
    hpro: Optional[float] = None


class RadiationSummary(_AliasedModel):
    rad_tot: Optional[float] = Field(default=None, alias="radTot")
    rad_pro: Optional[float] = Field(default=None, alias="radPro")
    rad_max: Optional[float] = Field(default=None, alias="radMax")


class DailyReportPayload(_AliasedModel):
    """Hour-by-hour breakdown of one local day plus its summaries."""

    device_id: str = Field(..., alias="deviceId")
    date: str
    timezone: str
    rows: List[DailyReportRow]
    temperature: TemperatureSummary
    humidity: HumiditySummary
    radiation: RadiationSummary


class MonthlyDay(_AliasedModel):
    day: int = Field(..., ge=1, le=31)
    rad_tot: Optional[float] = Field(default=None, alias="RadTot")
    rad_pro: Optional[float] = Field(default=None, alias="RadPro")
    rad_max: Optional[float] = Field(default=None, alias="RadMax")
    hr: Optional[float] = Field(default=None, alias="HR")
    tmax: Optional[float] = Field(default=None, alias="Tmax")
    tmin: Optional[float] = Field(default=None, alias="Tmin")
    tpro: Optional[float] = Field(default=None, alias="Tpro")


class MonthlyReportPayload(_AliasedModel):
    device_id: str = Field(..., alias="deviceId")
    year: int
    month: int = Field(..., ge=1, le=12)
    timezone: str
    days: List[MonthlyDay]


class SensorAverage(_AliasedModel):
    sensor_type: SensorType = Field(..., alias="sensorType")
    average: float
    samples: int = Field(..., ge=0)
    units: str


class WeeklyDay(_AliasedModel):
    date: str
    weekday: int = Field(..., ge=1, le=7, description="ISO weekday, Monday is 1.")
    weekday_name: str = Field(..., alias="weekdayName")
    sensors: List[SensorAverage] = Field(default_factory=list)


class ReportRange(_AliasedModel):
    from_: str = Field(..., alias="from")
    to: str


class WeeklyAveragesPayload(_AliasedModel):
    device_id: str = Field(..., alias="deviceId")
    days: int = Field(..., ge=1)
    timezone: str
    range: ReportRange
    sensors: List[SensorAverage]
    daily: List[WeeklyDay]


class RecalculateRequest(_AliasedModel):
    """Body of the manual hourly recalculation request."""

    device_id: Optional[str] = Field(default=None, alias="deviceId", min_length=1)
    sensor_type: Optional[SensorType] = Field(default=None, alias="sensorType")
    from_: str = Field(..., alias="from", description="ISO-8601 instant, offset optional.")
    to: str = Field(..., description="ISO-8601 instant, offset optional.")
    timezone: Optional[str] = None


class RecalculateResponse(BaseModel):
    message: str
    upserted: int = Field(..., ge=0)


class LatestReading(_AliasedModel):
    device_id: str = Field(..., alias="deviceId")
    sensor_type: SensorType = Field(..., alias="sensorType")
    value: float
    unit: str
    timestamp: datetime


class SensorSummaryEntry(_AliasedModel):
    """Statistics computed directly over raw readings."""

    device_id: str = Field(..., alias="deviceId")
    sensor_type: SensorType = Field(..., alias="sensorType")
    unit: str
    samples: int = Field(..., ge=1)
    min_value: float = Field(..., alias="minValue")
    max_value: float = Field(..., alias="maxValue")
    average_value: float = Field(..., alias="averageValue")
    first_timestamp: datetime = Field(..., alias="firstTimestamp")
    last_timestamp: datetime = Field(..., alias="lastTimestamp")
    latest_value: float = Field(..., alias="latestValue")


class IngestError(BaseModel):
    """Details about a CSV row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str


class IngestResponse(BaseModel):
    inserted: int = Field(..., ge=0)
    errors: List[IngestError] = Field(default_factory=list)

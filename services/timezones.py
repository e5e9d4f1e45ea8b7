"""Zone-aware date helpers shared by the aggregator and the report composer.

Local buckets (hour, day, month) are computed on ``zoneinfo`` datetimes,
never by adding a fixed offset to UTC. Instants leave this module as
timezone-aware UTC datetimes.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from services.errors import DateParseError

DEFAULT_DECIMALS = 2

_UTC_ALIASES = {"UTC", "Z", "GMT", "ZULU"}


def resolve_zone(name: Optional[str], default: str) -> ZoneInfo:
    """Return the zone for ``name``, falling back to ``default`` when blank."""
    candidate = (name or "").strip() or default
    if candidate.upper() in _UTC_ALIASES:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise DateParseError(f"Unknown timezone {candidate!r}.") from exc


def is_utc_zone(zone: ZoneInfo) -> bool:
    return getattr(zone, "key", "").upper() in _UTC_ALIASES


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise DateParseError("Datetime values must carry a timezone.")
    return value.astimezone(timezone.utc)


def truncate_to_hour(instant: datetime, zone: ZoneInfo) -> datetime:
    """Start of the local hour containing ``instant``, as a UTC instant."""
    local = ensure_utc(instant).astimezone(zone)
    return local.replace(minute=0, second=0, microsecond=0).astimezone(timezone.utc)


def floor_utc_hour(instant: datetime) -> datetime:
    return ensure_utc(instant).replace(minute=0, second=0, microsecond=0)


def start_of_local_day(instant: datetime, zone: ZoneInfo) -> datetime:
    local = ensure_utc(instant).astimezone(zone)
    return datetime.combine(local.date(), time(), tzinfo=zone)


def local_day_range(day: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """``[start, end)`` of the local calendar day, as UTC instants."""
    try:
        start = datetime.combine(day, time(), tzinfo=zone)
        end = datetime.combine(day + timedelta(days=1), time(), tzinfo=zone)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
    except OverflowError as exc:
        raise DateParseError(f"Date {day.isoformat()} is out of range.") from exc


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def local_month_range(year: int, month: int, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """``[first day 00:00, first day of next month 00:00)`` as UTC instants."""
    if not 1 <= month <= 12:
        raise DateParseError(f"Month must be between 1 and 12, got {month}.")
    try:
        first = date(year, month, 1)
        following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        start = datetime.combine(first, time(), tzinfo=zone)
        end = datetime.combine(following, time(), tzinfo=zone)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise DateParseError(f"Month {year}-{month:02d} is out of range.") from exc


def to_zoned_iso(instant: datetime, zone: ZoneInfo) -> str:
    """ISO-8601 in ``zone`` without fractional seconds; UTC renders as ``Z``."""
    local = ensure_utc(instant).astimezone(zone).replace(microsecond=0)
    rendered = local.isoformat()
    if is_utc_zone(zone) and rendered.endswith("+00:00"):
        return rendered[: -len("+00:00")] + "Z"
    return rendered


def parse_instant(value: str, zone: ZoneInfo) -> datetime:
    """Parse an ISO-8601 datetime; values without an offset are read in ``zone``."""
    candidate = value.strip()
    if not candidate:
        raise DateParseError("Datetime value is empty.")

    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise DateParseError(f"Invalid ISO datetime {value!r}.") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)

    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        raise DateParseError(f"Datetime {value!r} is out of range.") from exc


def parse_local_date(value: str) -> date:
    candidate = value.strip()
    try:
        return date.fromisoformat(candidate)
    except ValueError as exc:
        raise DateParseError(f"Invalid date {value!r}, expected YYYY-MM-DD.") from exc


def round_metric(value: Optional[float], decimals: int = DEFAULT_DECIMALS) -> Optional[float]:
    if value is None:
        return None
    return round(value, decimals)


def mean(values: Iterable[float]) -> Optional[float]:
    items = list(values)
    if not items:
        return None
    return sum(items) / len(items)

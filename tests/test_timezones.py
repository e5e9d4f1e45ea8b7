from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from services.errors import DateParseError
from services.timezones import (
    days_in_month,
    local_day_range,
    local_month_range,
    parse_instant,
    parse_local_date,
    resolve_zone,
    round_metric,
    to_zoned_iso,
    truncate_to_hour,
)

UTC = timezone.utc
BOGOTA = ZoneInfo("America/Bogota")


def test_resolve_zone_falls_back_to_default_for_blank_names() -> None:
    assert resolve_zone(None, "America/Bogota").key == "America/Bogota"
    assert resolve_zone("  ", "America/Bogota").key == "America/Bogota"
    assert resolve_zone("utc", "America/Bogota").key == "UTC"


@pytest.mark.parametrize("name", ["Mars/Olympus_Mons", "America", "Europe/"])
def test_resolve_zone_rejects_unknown_names(name: str) -> None:
    with pytest.raises(DateParseError):
        resolve_zone(name, "UTC")


def test_ranges_at_calendar_limits_are_rejected() -> None:
    with pytest.raises(DateParseError):
        local_day_range(date(9999, 12, 31), BOGOTA)
    with pytest.raises(DateParseError):
        local_day_range(date(1, 1, 1), ZoneInfo("Asia/Tokyo"))
    with pytest.raises(DateParseError):
        local_month_range(9999, 12, BOGOTA)


def test_parse_instant_rejects_values_outside_utc_range() -> None:
    with pytest.raises(DateParseError):
        parse_instant("0001-01-01T00:00:00", ZoneInfo("Asia/Tokyo"))
    with pytest.raises(DateParseError):
        parse_instant("9999-12-31T23:00:00-05:00", BOGOTA)


def test_truncate_to_hour_uses_local_hour() -> None:
    instant = datetime(2025, 11, 3, 4, 45, tzinfo=UTC)

    hour = truncate_to_hour(instant, BOGOTA)

    assert hour == datetime(2025, 11, 3, 4, tzinfo=UTC)
    assert to_zoned_iso(hour, BOGOTA) == "2025-11-02T23:00:00-05:00"


def test_to_zoned_iso_renders_utc_with_z_and_drops_fractions() -> None:
    instant = datetime(2025, 11, 2, 9, 0, 0, 123456, tzinfo=UTC)

    assert to_zoned_iso(instant, ZoneInfo("UTC")) == "2025-11-02T09:00:00Z"
    assert to_zoned_iso(instant, BOGOTA) == "2025-11-02T04:00:00-05:00"


def test_local_day_range_is_half_open_in_zone() -> None:
    start, end = local_day_range(date(2025, 11, 2), BOGOTA)

    assert start == datetime(2025, 11, 2, 5, tzinfo=UTC)
    assert end == datetime(2025, 11, 3, 5, tzinfo=UTC)


def test_local_day_range_spans_25_hours_on_dst_fall_back() -> None:
    start, end = local_day_range(date(2025, 11, 2), ZoneInfo("America/New_York"))

    assert (end - start).total_seconds() == 25 * 3600


def test_local_month_range_and_days_in_month() -> None:
    start, end = local_month_range(2024, 12, BOGOTA)

    assert start == datetime(2024, 12, 1, 5, tzinfo=UTC)
    assert end == datetime(2025, 1, 1, 5, tzinfo=UTC)
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2025, 2) == 28
    assert days_in_month(2025, 11) == 30


def test_local_month_range_rejects_invalid_month() -> None:
    with pytest.raises(DateParseError):
        local_month_range(2025, 13, BOGOTA)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-11-02T10:00:00Z", datetime(2025, 11, 2, 10, tzinfo=UTC)),
        ("2025-11-02T10:00:00+02:00", datetime(2025, 11, 2, 8, tzinfo=UTC)),
        ("2025-11-02T10:00:00", datetime(2025, 11, 2, 15, tzinfo=UTC)),
    ],
)
def test_parse_instant_assumes_zone_when_offset_missing(raw: str, expected: datetime) -> None:
    assert parse_instant(raw, BOGOTA) == expected


@pytest.mark.parametrize("raw", ["", "yesterday", "2025-13-45T00:00:00Z"])
def test_parse_instant_rejects_malformed_values(raw: str) -> None:
    with pytest.raises(DateParseError):
        parse_instant(raw, BOGOTA)


def test_parse_local_date() -> None:
    assert parse_local_date("2025-11-02") == date(2025, 11, 2)
    with pytest.raises(DateParseError):
        parse_local_date("02/11/2025")


def test_round_metric() -> None:
    assert round_metric(None) is None
    assert round_metric(21.6666) == 21.67
    assert round_metric((20 + 27 + 18) / 3) == 21.67

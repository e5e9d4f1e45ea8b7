from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.reports", logging.INFO, __file__, 1, "Hourly aggregates upserted", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extras() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    rendered = formatter.format(_record(device_id="ESP32_1", upserted=4, sensor_type=None, ignored="x"))

    assert rendered == "Hourly aggregates upserted | device_id=ESP32_1 upserted=4"


def test_formatter_without_extras_leaves_message_alone() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["row_count"])

    assert formatter.format(_record(device_id="ESP32_1")) == "Hourly aggregates upserted"

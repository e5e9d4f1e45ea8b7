"""Periodic trigger that aggregates the most recently completed hour."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from threading import Event, Lock, Thread
from typing import Dict, Optional

from services.reports import ReportService
from services.timezones import floor_utc_hour

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300


def last_completed_hour_window(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """``[to - 1h, to)`` where ``to`` is ``now`` floored to the UTC hour."""
    current = now or datetime.now(timezone.utc)
    end = floor_utc_hour(current)
    return end - timedelta(hours=1), end


class HourlyAggregationJob:
    """Runs ``upsert_hourly_averages`` for the last full hour every ``interval_seconds``.

    A failed run is logged and left for the next tick to retry.
    """

    def __init__(
        self,
        service: ReportService,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.service = service
        self.interval_seconds = interval_seconds
        self._stop = Event()
        self._thread: Optional[Thread] = None
        self._thread_lock = Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._thread_lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = Thread(
                target=self._run, name="hourly-aggregation-job", daemon=True
            )
            self._thread.start()
        logger.info("Hourly aggregation job scheduled every %s seconds", self.interval_seconds)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._thread_lock:
            thread = self._thread
            self._thread = None
        self._stop.set()
        if thread is not None:
            thread.join(timeout=timeout)

    def run_once(self, now: Optional[datetime] = None) -> Optional[Dict[str, int]]:
        start, end = last_completed_hour_window(now)
        if start >= end:
            return None

        try:
            result = self.service.upsert_hourly_averages(start, end)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Hourly aggregation run failed",
                extra={"window_from": start.isoformat(), "window_to": end.isoformat()},
            )
            return None

        if result["upserted"] > 0:
            logger.info(
                "Hourly aggregation run stored aggregates",
                extra={
                    "window_from": start.isoformat(),
                    "window_to": end.isoformat(),
                    "upserted": result["upserted"],
                },
            )
        return result

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

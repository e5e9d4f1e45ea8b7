from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the reports service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def import_readings(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        with path.open("rb") as handle:
            return self._request(
                "POST",
                "/readings",
                files={"file": (path.name, handle, "text/csv")},
                params=self._with_timezone({}),
            )

    def recalculate(
        self,
        start: str,
        end: str,
        device_id: Optional[str] = None,
        sensor_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "from": start,
            "to": end,
            "deviceId": device_id,
            "sensorType": sensor_type,
            "timezone": self._config.timezone,
        }
        return self._request(
            "POST",
            "/reports/hourly/recalculate",
            json={key: value for key, value in body.items() if value is not None},
        )

    def hourly_report(self, **filters: Any) -> Dict[str, Any]:
        params = {
            "deviceId": filters.get("device_id"),
            "sensorType": filters.get("sensor_type"),
            "date": filters.get("date"),
            "from": filters.get("start"),
            "to": filters.get("end"),
            "limit": filters.get("limit"),
            "page": filters.get("page"),
        }
        return self._request("GET", "/reports/hourly", params=self._with_timezone(params))

    def daily_report(self, device_id: str, date: str) -> Dict[str, Any]:
        params = {"deviceId": device_id, "date": date}
        return self._request("GET", "/reports/daily", params=self._with_timezone(params))

    def monthly_report(self, device_id: str, year: int, month: int) -> Dict[str, Any]:
        params = {"deviceId": device_id, "year": year, "month": month}
        return self._request("GET", "/reports/monthly", params=self._with_timezone(params))

    def weekly_report(self, device_id: str, days: int) -> Dict[str, Any]:
        params = {"deviceId": device_id, "days": days}
        return self._request("GET", "/reports/weekly", params=self._with_timezone(params))

    def _with_timezone(self, params: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(params, timezone=self._config.timezone)
        return {key: value for key, value in merged.items() if value is not None}

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

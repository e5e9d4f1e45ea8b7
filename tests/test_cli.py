from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.imported_path: Path | None = None
        self.calls: List[tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def import_readings(self, path: Path) -> Dict[str, Any]:
        self.imported_path = path
        return {"inserted": 2, "errors": [{"row_number": 4, "reason": "invalid timestamp"}]}

    def recalculate(self, start: str, end: str, device_id=None, sensor_type=None) -> Dict[str, Any]:
        self.calls.append(
            ("recalculate", {"start": start, "end": end, "device_id": device_id, "sensor_type": sensor_type})
        )
        return {"message": "Hourly aggregates recalculated.", "upserted": 7}

    def hourly_report(self, **filters: Any) -> Dict[str, Any]:
        self.calls.append(("hourly", filters))
        return {
            "data": [
                {
                    "deviceId": "ESP32_1",
                    "sensorType": "temperature",
                    "hour": "2025-11-02T04:00:00-05:00",
                    "avg": 21.0,
                    "min": 20.0,
                    "max": 22.0,
                    "samples": 2,
                    "units": "°C",
                }
            ],
            "pagination": {"total": 1, "limit": 500, "page": 1, "pages": 1},
        }

    def daily_report(self, device_id: str, date: str) -> Dict[str, Any]:
        self.calls.append(("daily", {"device_id": device_id, "date": date}))
        return {
            "deviceId": device_id,
            "date": date,
            "timezone": "America/Bogota",
            "rows": [{"hour": 0}, {"hour": 1, "temperature_avg": 18.5, "isTmax": True, "isTmin": True}],
            "temperature": {"tmax": 18.5, "tmin": 18.5, "tpro": 18.5},
            "humidity": {},
            "radiation": {},
        }

    def monthly_report(self, device_id: str, year: int, month: int) -> Dict[str, Any]:
        self.calls.append(("monthly", {"device_id": device_id, "year": year, "month": month}))
        return {
            "deviceId": device_id,
            "year": year,
            "month": month,
            "timezone": "America/Bogota",
            "days": [{"day": 1, "Tmax": 26.0, "Tmin": 20.0, "Tpro": 23.0}, {"day": 2}],
        }

    def weekly_report(self, device_id: str, days: int) -> Dict[str, Any]:
        self.calls.append(("weekly", {"device_id": device_id, "days": days}))
        return {
            "deviceId": device_id,
            "days": days,
            "timezone": "UTC",
            "range": {"from": "2025-11-02T00:00:00Z", "to": "2025-11-09T00:00:00Z"},
            "sensors": [{"sensorType": "temperature", "average": 23.33, "samples": 3, "units": "°C"}],
            "daily": [
                {"date": "2025-11-08T00:00:00Z", "weekday": 6, "weekdayName": "Sábado", "sensors": []},
            ],
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_import_command(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("device_id,sensor_type,value,unit,timestamp\n")

    result = runner.invoke(app, ["import", str(csv_path)])

    assert result.exit_code == 0
    assert "Import Result" in result.stdout
    assert "row 4: invalid timestamp" in result.stdout
    assert stub.imported_path == csv_path
    assert stub.closed is True


def test_recalculate_command(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(
        app,
        ["recalculate", "--from", "2025-11-02T00:00:00Z", "--to", "2025-11-03T00:00:00Z", "-d", "ESP32_1"],
    )

    assert result.exit_code == 0
    assert "upserted: 7" in result.stdout
    assert stub.calls == [
        (
            "recalculate",
            {
                "start": "2025-11-02T00:00:00Z",
                "end": "2025-11-03T00:00:00Z",
                "device_id": "ESP32_1",
                "sensor_type": None,
            },
        )
    ]


def test_hourly_command_passes_filters(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(
        app,
        ["--timezone", "America/Bogota", "hourly", "-d", "ESP32_1", "--date", "2025-11-02", "--limit", "50"],
    )

    assert result.exit_code == 0
    assert "2025-11-02T04:00:00-05:00" in result.stdout
    assert "page 1/1" in result.stdout
    _, filters = stub.calls[0]
    assert filters["device_id"] == "ESP32_1"
    assert filters["date"] == "2025-11-02"
    assert filters["limit"] == 50
    assert filters["page"] is None
    assert stub.config.timezone == "America/Bogota"


def test_daily_command(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["daily", "ESP32_1", "2025-11-02"])

    assert result.exit_code == 0
    assert "Daily Report ESP32_1 2025-11-02" in result.stdout
    assert "tmax: 18.5" in result.stdout
    assert "hpro: -" in result.stdout


def test_monthly_command(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["monthly", "ESP32_1", "2025", "11"])

    assert result.exit_code == 0
    assert "Monthly Report ESP32_1 2025-11" in result.stdout
    assert stub.calls == [("monthly", {"device_id": "ESP32_1", "year": 2025, "month": 11})]


def test_monthly_command_validates_month(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["monthly", "ESP32_1", "2025", "13"])

    assert result.exit_code != 0
    assert stub.calls == []


def test_weekly_command(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["weekly", "ESP32_1", "--days", "7"])

    assert result.exit_code == 0
    assert "Weekly Averages ESP32_1" in result.stdout
    assert "Sábado 2025-11-08T00:00:00Z" in result.stdout
    assert "no data" in result.stdout


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://reports.local:9000/")
    monkeypatch.setenv("CLI_TIMEOUT", "invalid")
    monkeypatch.setenv("CLI_TIMEZONE", "UTC")

    config = load_config()

    assert config.base_url == "http://reports.local:9000"
    assert config.timeout == 30.0
    assert config.timezone == "UTC"

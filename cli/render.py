from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _cell(value: Optional[Any]) -> str:
    if value is None:
        return "-"
    if value is True:
        return "*"
    return str(value)


def echo_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    rendered = [[_cell(value) for value in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in rendered:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]
    typer.echo("  ".join(header.ljust(width) for header, width in zip(headers, widths)))
    for row in rendered:
        typer.echo("  ".join(cell.ljust(width) for cell, width in zip(row, widths)))


def render_ingest(payload: Dict[str, Any]) -> None:
    echo_heading("Import Result")
    echo_key_values([("inserted", payload.get("inserted"))])
    errors = payload.get("errors") or []
    if errors:
        typer.echo("errors:")
        for error in errors:
            typer.echo(f"  - row {error.get('row_number')}: {error.get('reason')}")


def render_recalculate(payload: Dict[str, Any]) -> None:
    typer.secho(payload.get("message", ""), fg=typer.colors.GREEN)
    echo_key_values([("upserted", payload.get("upserted"))])


def render_hourly(payload: Dict[str, Any]) -> None:
    echo_heading("Hourly Report")
    echo_table(
        ("hour", "deviceId", "sensorType", "avg", "min", "max", "samples", "units"),
        (
            (
                entry.get("hour"),
                entry.get("deviceId"),
                entry.get("sensorType"),
                entry.get("avg"),
                entry.get("min"),
                entry.get("max"),
                entry.get("samples"),
                entry.get("units"),
            )
            for entry in payload.get("data") or []
        ),
    )
    pagination = payload.get("pagination") or {}
    typer.echo(
        f"page {pagination.get('page')}/{pagination.get('pages')} "
        f"(total={pagination.get('total')}, limit={pagination.get('limit')})"
    )


def render_daily(payload: Dict[str, Any]) -> None:
    echo_heading(f"Daily Report {payload.get('deviceId')} {payload.get('date')}")
    echo_table(
        ("hour", "temperature", "humidity", "radiation", "Tmax", "Tmin"),
        (
            (
                row.get("hour"),
                row.get("temperature_avg"),
                row.get("humidity_avg"),
                row.get("solar_radiation_avg"),
                row.get("isTmax"),
                row.get("isTmin"),
            )
            for row in payload.get("rows") or []
        ),
    )
    typer.echo()
    temperature = payload.get("temperature") or {}
    humidity = payload.get("humidity") or {}
    radiation = payload.get("radiation") or {}
    echo_key_values(
        [
            ("tmax", _cell(temperature.get("tmax"))),
            ("tmin", _cell(temperature.get("tmin"))),
            ("tpro", _cell(temperature.get("tpro"))),
            ("hpro", _cell(humidity.get("hpro"))),
            ("radTot", _cell(radiation.get("radTot"))),
            ("radPro", _cell(radiation.get("radPro"))),
            ("radMax", _cell(radiation.get("radMax"))),
        ]
    )


def render_monthly(payload: Dict[str, Any]) -> None:
    echo_heading(
        f"Monthly Report {payload.get('deviceId')} {payload.get('year')}-{payload.get('month'):02d}"
    )
    columns = ("day", "Tmax", "Tmin", "Tpro", "HR", "RadTot", "RadPro", "RadMax")
    echo_table(columns, ([day.get(column) for column in columns] for day in payload.get("days") or []))


def render_weekly(payload: Dict[str, Any]) -> None:
    window = payload.get("range") or {}
    echo_heading(f"Weekly Averages {payload.get('deviceId')} ({window.get('from')} - {window.get('to')})")
    echo_table(
        ("sensorType", "average", "samples", "units"),
        (
            (sensor.get("sensorType"), sensor.get("average"), sensor.get("samples"), sensor.get("units"))
            for sensor in payload.get("sensors") or []
        ),
    )
    for day in payload.get("daily") or []:
        typer.echo()
        typer.echo(f"{day.get('weekdayName')} {day.get('date')}")
        sensors = day.get("sensors") or []
        if not sensors:
            typer.echo("  no data")
        for sensor in sensors:
            typer.echo(
                f"  - {sensor.get('sensorType')}: {sensor.get('average')} {sensor.get('units')}"
                f" ({sensor.get('samples')} samples)"
            )

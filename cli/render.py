from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_TREND_ARROWS = {1: "rising", -1: "falling", 0: "flat"}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _sensor_line(name: str, sensor: Dict[str, Any]) -> str:
    parts = [f"min={sensor.get('min')}", f"max={sensor.get('max')}"]
    if sensor.get("current") is not None:
        parts.insert(0, f"current={sensor.get('current')}")
    if sensor.get("trend") is not None:
        parts.append(f"trend={_TREND_ARROWS.get(sensor['trend'], sensor['trend'])}")
    return f"  {name}: {' '.join(parts)}"


def _label(entry: Dict[str, Any]) -> str:
    return entry.get("tag_name") or f"tag {entry.get('tag_id')}"


def render_status(entries: list[Dict[str, Any]]) -> None:
    echo_heading("Current Status")
    if not entries:
        typer.echo("No readings available.")
        return
    for entry in entries:
        typer.echo()
        echo_heading(_label(entry))
        echo_key_values(
            [
                ("datetime", entry.get("datetime")),
                ("battery_low", entry.get("battery_low")),
            ]
        )
        typer.echo(_sensor_line("temperature", entry.get("temperature") or {}))
        typer.echo(_sensor_line("humidity", entry.get("humidity") or {}))


def render_aggregates(entries: list[Dict[str, Any]]) -> None:
    echo_heading("Daily Aggregates")
    if not entries:
        typer.echo("No aggregates available.")
        return
    for entry in entries:
        typer.echo()
        typer.echo(f"{entry.get('date')} {_label(entry)}")
        typer.echo(_sensor_line("temperature", entry.get("temperature") or {}))
        typer.echo(_sensor_line("humidity", entry.get("humidity") or {}))

from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_READING_FIELDS = ("temperature", "pressure", "humidity", "altitude")
_UNITS = {"temperature": "°C", "pressure": "hPa", "humidity": "%", "altitude": "m"}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_ac_status(payload: Dict[str, Any]) -> None:
    echo_heading("AC Status")
    echo_key_values(
        [
            ("powered", "on" if payload.get("powered") else "off"),
            ("mode", payload.get("mode")),
            ("temperature", f"{payload.get('temperature')}°C"),
        ]
    )


def render_reading(payload: Dict[str, Any], selected: Iterable[str]) -> None:
    """Print only the selected fields; the others carry the 0.0 placeholder."""
    chosen = set(selected)
    parts = [
        f"{name}={payload.get(name, 0.0):.2f}{_UNITS[name]}"
        for name in _READING_FIELDS
        if name in chosen
    ]
    typer.echo("  ".join(parts))

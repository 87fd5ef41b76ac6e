from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_ac_status, render_reading


class ModeChoice(str, Enum):
    auto = "auto"
    warm = "warm"
    dry = "dry"
    cool = "cool"
    fan = "fan"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Control the mattori_home air conditioner and watch the atmosphere sensor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to MATTORI_API_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the current air-conditioner status."""
    state = _get_state(ctx)
    render_ac_status(state.client.get_ac_status())


@app.command("set")
def set_command(
    ctx: typer.Context,
    power: Optional[bool] = typer.Option(None, "--on/--off", help="Power the unit on or off."),
    mode: Optional[ModeChoice] = typer.Option(None, "--mode", "-m", help="Operating mode."),
    temperature: Optional[int] = typer.Option(
        None, "--temperature", "-t", min=0, help="Target temperature in °C."
    ),
) -> None:
    """Change the air conditioner; options left out keep their current value."""
    state = _get_state(ctx)
    if power is None and mode is None and temperature is None:
        raise typer.BadParameter("Pass at least one of --on/--off, --mode or --temperature.")

    target = state.client.get_ac_status()
    if power is not None:
        target["powered"] = power
    if mode is not None:
        target["mode"] = mode.value.upper()
    if temperature is not None:
        target["temperature"] = temperature
    elif not target.get("temperature"):
        # 0 is the status before the first Set and no unit accepts it.
        raise typer.BadParameter(
            "The air conditioner has no target temperature yet; pass --temperature.",
            param_hint="--temperature",
        )

    achieved = state.client.set_ac_status(target)
    typer.secho("AC status applied.", fg=typer.colors.GREEN)
    render_ac_status(achieved)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    temperature: bool = typer.Option(True, "--temperature/--no-temperature"),
    pressure: bool = typer.Option(True, "--pressure/--no-pressure"),
    humidity: bool = typer.Option(True, "--humidity/--no-humidity"),
    altitude: bool = typer.Option(False, "--altitude/--no-altitude"),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Stop after this many readings."
    ),
) -> None:
    """Stream atmosphere readings for the selected features."""
    state = _get_state(ctx)
    features = {
        "temperature": temperature,
        "pressure": pressure,
        "humidity": humidity,
        "altitude": altitude,
    }
    selected = [name for name, enabled in features.items() if enabled]
    if not selected:
        raise typer.BadParameter("Select at least one feature to watch.")

    async def _watch() -> None:
        async for reading in state.client.read_atmosphere(features, count=count):
            render_reading(reading, selected)

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        typer.echo()


@app.command("sea-level")
def sea_level_command(
    ctx: typer.Context,
    hpa: float = typer.Argument(..., min=0.1, help="Sea level pressure in hPa."),
) -> None:
    """Set the reference pressure used for altitude readings."""
    state = _get_state(ctx)
    payload = state.client.set_sea_level_pressure(hpa)
    typer.secho(f"Sea level pressure set to {payload.get('hpa')} hPa.", fg=typer.colors.GREEN)

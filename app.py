"""
Production Timeline KPI - command line entry point

Loads environment configuration, sets up logging, then reports KPIs for a
timeline payload or converts payloads between the minute and clock variants.
"""

from pathlib import Path
from typing import Optional

import typer

from analysis.production import ProductionSession
from core.errors import ConfigValidationError, PayloadImportError
from core.interchange.payload import dumps_payload, loads_payload
from utils.config import configure_logging, load_config, validate_config
from utils.formatting import format_duration, format_percentage

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def main(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to a .env file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to LOG_LEVEL)"),
):
    """Interval algebra and KPI engine for production timelines."""
    load_config(str(env_file) if env_file else None)
    configure_logging(log_level)

    config_errors = validate_config()
    if config_errors:
        for error in config_errors:
            typer.echo(f"Configuration error: {error}", err=True)
        raise typer.Exit(code=1)


def _read_payload(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"Cannot read payload: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def report(
    payload: Path = typer.Argument(..., help="Payload file (minute or clock variant)"),
    basis: Optional[str] = typer.Option(None, "--basis", help="Target basis: cycle, hour or shift"),
    shift: Optional[int] = typer.Option(None, "--shift", help="Shift duration in minutes"),
    target_rate: Optional[float] = typer.Option(None, "--target-rate", help="Target output per basis unit"),
    actual_output: Optional[float] = typer.Option(None, "--actual-output", help="Explicit actual output"),
    context: Optional[str] = typer.Option(None, "--context", help="production or production_plus_downtime"),
    actual_basis: Optional[str] = typer.Option(None, "--actual-basis", help="net or raw"),
    planned_time: Optional[float] = typer.Option(None, "--planned-time", help="Planned minutes (defaults to head time)"),
    downtime_budget: Optional[float] = typer.Option(None, "--downtime-budget", help="Downtime budget in minutes"),
):
    """Print the per-head breakdown and the KPI summary for a payload."""
    changes = {
        "target_basis": basis,
        "shift_duration": shift,
        "target_rate": target_rate,
        "actual_output": actual_output,
        "time_context": context,
        "actual_basis": actual_basis,
        "downtime_budget": downtime_budget,
    }
    changes = {key: value for key, value in changes.items() if value is not None}

    session = ProductionSession(name=payload.stem, planned_time=planned_time)
    try:
        session.load_payload(_read_payload(payload))
        if changes:
            session.update_config(**changes)
    except (PayloadImportError, ConfigValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    metrics = session.compute()

    typer.echo(session.head_summary().to_string(index=False))
    typer.echo("")
    typer.echo(f"KPI time:      {format_duration(metrics.kpi_time)}")
    typer.echo(f"Target output: {metrics.target_output:.2f}")
    typer.echo(f"Actual output: {metrics.actual_output:.2f}")
    typer.echo(f"Productivity:  {format_percentage(metrics.productivity_ratio)}")
    typer.echo(f"Availability:  {format_percentage(metrics.availability)}")
    typer.echo(f"OEE (cycle):   {format_percentage(metrics.oee_cycle_base)}")
    typer.echo(f"OEE (target):  {format_percentage(metrics.oee_target_base)}")


@app.command()
def convert(
    payload: Path = typer.Argument(..., help="Payload file (minute or clock variant)"),
    start_clock: Optional[str] = typer.Option(
        None, "--start-clock", help="Emit the clock variant anchored at HH:MM (minute variant otherwise)"
    ),
):
    """Re-emit a payload in compact form."""
    try:
        heads = loads_payload(_read_payload(payload))
        typer.echo(dumps_payload(heads, start_clock=start_clock))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

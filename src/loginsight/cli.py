"""Typer CLI for loginsight.

Commands:
  replay       Feed a JSON-lines log file through the insights engine
  show-config  Print the resolved configuration
"""

from __future__ import annotations

import json
import logging
from pathlib import Path  # noqa: TC003 - Typer evaluates type hints at runtime
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from loginsight.config import InsightsConfig, load_config
from loginsight.coordinator import InsightsCoordinator
from loginsight.errors import ConfigFileError, InvalidSampleError, StoreUnavailableError
from loginsight.models import AggregationResult
from loginsight.sinks import build_sinks, deliver_all

app = typer.Typer(
    name="loginsight",
    help="Log-driven metric aggregation and insight scheduling",
    no_args_is_help=True,
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(config_file: Path | None, **overrides: Any) -> InsightsConfig:
    try:
        return load_config(config_file, **overrides)
    except ConfigFileError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None


def _parse_line(line: str) -> tuple[str, float | None]:
    """Extract (level, response_time) from one JSON log line."""
    record = json.loads(line)
    if not isinstance(record, dict):
        msg = "log line must be a JSON object"
        raise ValueError(msg)
    return record.get("level"), record.get("response_time", record.get("responseTime"))


def _insights_table(insights: dict[str, AggregationResult]) -> Table:
    table = Table(title="Insights")
    table.add_column("Metric", style="cyan")
    table.add_column("Aggregation")
    table.add_column("Value", style="green")
    for metric, result in sorted(insights.items()):
        for kind, value in result.as_dict().items():
            table.add_row(metric, kind, _format_value(value))
    return table


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    if isinstance(value, list) and len(value) > 6:
        return f"{value[:6]!s} … ({len(value)} items)"
    return str(value)


@app.command()
def replay(
    log_file: Annotated[Path, typer.Argument(help="JSON-lines file with 'level' per line")],
    config_file: Annotated[
        Path | None, typer.Option("--config", "-c", help="JSON configuration file")
    ] = None,
    store: Annotated[
        Path | None,
        typer.Option("--store", "-s", help="Scheduler bookkeeping file (default: in memory)"),
    ] = None,
    format: Annotated[
        str, typer.Option("--format", "-f", help="Output format: text or json")
    ] = "text",
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Replay a log file through a coordinator and print the resulting insights."""
    _configure_logging(verbose)

    overrides: dict[str, Any] = {"insights_enabled": True}
    if store is not None:
        overrides["store_path"] = store
    config = _load(config_file, **overrides)

    if not log_file.exists():
        console.print(f"[red]Log file not found: {log_file}[/red]")
        raise typer.Exit(1)

    try:
        coordinator = InsightsCoordinator(config)
    except StoreUnavailableError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None
    sinks = build_sinks(config)

    events = skipped = snapshots = 0
    with log_file.open() as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                level, response_time = _parse_line(line)
                outcome = coordinator.on_log_event(level, response_time)
            except (ValueError, InvalidSampleError) as e:
                console.print(f"[yellow]line {lineno}: skipped ({e})[/yellow]")
                skipped += 1
                continue

            if outcome.rejected:
                console.print(f"[yellow]line {lineno}: unknown level {level!r}[/yellow]")
                skipped += 1
                continue
            events += 1

            for alert in outcome.alerts:
                if format == "text":
                    console.print(
                        f"  [red]alert[/red] line {lineno}: {alert.metric} "
                        f"{alert.observed_average:.4f} > {alert.threshold:.4f}"
                    )
            if outcome.snapshot_ready:
                snapshots += 1
                for failure in deliver_all(sinks, coordinator.snapshot()):
                    console.print(f"[red]{failure}[/red]")

    if format == "json":
        typer.echo(coordinator.snapshot().model_dump_json(indent=2, by_alias=True))
        return

    console.print(
        f"[bold]Events:[/bold] {events}  [bold]Skipped:[/bold] {skipped}  "
        f"[bold]Snapshots:[/bold] {snapshots}"
    )
    if coordinator.level_counts:
        counts = ", ".join(f"{lvl}={n}" for lvl, n in sorted(coordinator.level_counts.items()))
        console.print(f"[bold]Levels:[/bold] {counts}")
    console.print(_insights_table(coordinator.get_insights()))


@app.command("show-config")
def show_config(
    config_file: Annotated[
        Path | None, typer.Option("--config", "-c", help="JSON configuration file")
    ] = None,
) -> None:
    """Print the resolved configuration (overrides > file > environment > defaults)."""
    config = _load(config_file)
    typer.echo(config.model_dump_json(indent=2))


def main() -> None:
    app()

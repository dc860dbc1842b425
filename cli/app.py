from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import filter_failing, render_end_devices, render_extenders


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the mesh health metrics service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

_START_HELP = "Window start (defaults to end minus the server window)."
_END_HELP = "Window end (defaults to now)."
_FAILING_HELP = "Only show records with at least one failing criterion."


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _read_events(path: Path) -> List[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc.msg}") from exc
    events = data if isinstance(data, list) else [data]
    if not all(isinstance(item, dict) for item in events):
        raise typer.BadParameter(f"{path} must hold an event object or a list of them.")
    return events


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Metrics API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("end-devices")
def end_devices_command(
    ctx: typer.Context,
    start: Optional[datetime] = typer.Option(None, "--start", help=_START_HELP),
    end: Optional[datetime] = typer.Option(None, "--end", help=_END_HELP),
    failing_only: bool = typer.Option(False, "--failing-only", help=_FAILING_HELP),
) -> None:
    """Show health records for configured end devices."""
    state = _get_state(ctx)
    records = state.client.get_end_device_metrics(start, end)
    render_end_devices(filter_failing(records) if failing_only else records)


@app.command("extenders")
def extenders_command(
    ctx: typer.Context,
    start: Optional[datetime] = typer.Option(None, "--start", help=_START_HELP),
    end: Optional[datetime] = typer.Option(None, "--end", help=_END_HELP),
    failing_only: bool = typer.Option(False, "--failing-only", help=_FAILING_HELP),
) -> None:
    """Show health records for extenders and directors."""
    state = _get_state(ctx)
    records = state.client.get_extender_metrics(start, end)
    render_extenders(filter_failing(records) if failing_only else records)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON file with one event or a list."
    ),
) -> None:
    """Post events from a JSON file to the service."""
    state = _get_state(ctx)
    events = _read_events(file)
    typer.echo(f"Posting {len(events)} event(s) to {state.config.base_url} ...")
    stored = 0
    for document in events:
        accepted = state.client.post_event(document)
        if accepted.get("stored"):
            stored += 1
    typer.secho(
        f"Ingested {stored} new event(s), {len(events) - stored} already stored.",
        fg=typer.colors.GREEN,
    )

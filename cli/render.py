from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def _mark(value: Any) -> str:
    if value is True:
        return "pass"
    if value is False:
        return "FAIL"
    return "-" if value is None else str(value)


def _place(location: Dict[str, Any]) -> str:
    parts = [
        location.get("building"),
        location.get("sectionOrWing"),
        location.get("floor"),
        location.get("place"),
    ]
    return " / ".join(part for part in parts if part) or "not installed"


def is_passing(record: Dict[str, Any]) -> bool:
    criteria = record.get("criteria") or {}
    return all(criteria.values())


def filter_failing(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [record for record in records if not is_passing(record)]


def render_end_devices(records: List[Dict[str, Any]]) -> None:
    echo_heading(f"End devices ({len(records)})")
    if not records:
        typer.echo("No end devices to report.")
        return
    for record in records:
        typer.echo()
        typer.secho(
            f"{record.get('mac')}  {record.get('deviceName') or '(unnamed)'}",
            fg=typer.colors.GREEN if is_passing(record) else typer.colors.RED,
        )
        typer.echo(f"  location: {_place(record.get('location') or {})}")
        typer.echo(
            f"  type: {_mark(record.get('configType'))} / {_mark(record.get('hardwareType'))}"
            f"  firmware: {_mark(record.get('firmwareVersion'))}"
            f"  battery: {_mark(record.get('batteryVoltage'))}"
        )
        for trigger in record.get("deviceTriggersCriteria") or []:
            typer.echo(
                f"  - {trigger.get('txType')}: {_mark(trigger.get('pass'))}"
                f" ({trigger.get('receiverCount')} extenders)"
            )
        for key, value in (record.get("criteria") or {}).items():
            typer.echo(f"  {key}: {_mark(value)}")


def render_extenders(records: List[Dict[str, Any]]) -> None:
    echo_heading(f"Extenders ({len(records)})")
    if not records:
        typer.echo("No extenders to report.")
        return
    for record in records:
        typer.echo()
        typer.secho(
            f"{record.get('mac')}  {record.get('deviceName') or '(unnamed)'}"
            f"  [{record.get('hardwareType')}]",
            fg=typer.colors.GREEN if is_passing(record) else typer.colors.RED,
        )
        typer.echo(f"  location: {_place(record.get('location') or {})}")
        typer.echo(
            f"  artifact: {_mark(record.get('menderArtifact'))}"
            f"  end-device firmware: {_mark(record.get('endDeviceFirmwareVersion'))}"
        )
        typer.echo(
            f"  zigbee active: {_mark(record.get('zigbeeActivePercentage'))}%"
            f"  wifi active: {_mark(record.get('wifiActivePercentage'))}%"
            f"  neighbors: {_mark(record.get('neighborsCount'))}"
        )
        for key, value in (record.get("criteria") or {}).items():
            typer.echo(f"  {key}: {_mark(value)}")

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import typer

from cli.client import RESOURCES, ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_document, render_documents


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Manage machines, sensors and sensor data through the registry API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _check_resource(resource: str) -> str:
    if resource not in RESOURCES:
        raise typer.BadParameter(f"Resource must be one of: {', '.join(RESOURCES)}.")
    return resource


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Registry API base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API response.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("list")
def list_command(
    ctx: typer.Context,
    resource: str = typer.Argument(..., callback=_check_resource, help="machine, sensor or sensor-data."),
) -> None:
    """List every entry of a resource."""
    state = _get_state(ctx)
    render_documents(resource, state.client.list_documents(resource))


@app.command("show")
def show_command(
    ctx: typer.Context,
    resource: str = typer.Argument(..., callback=_check_resource),
    document_id: str = typer.Argument(..., help="Identifier of the entry."),
) -> None:
    """Show a single entry."""
    state = _get_state(ctx)
    render_document(resource, state.client.get_document(resource, document_id))


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    resource: str = typer.Argument(..., callback=_check_resource),
    document_id: str = typer.Argument(..., help="Identifier of the entry."),
) -> None:
    """Delete a single entry. Dependent entries are left in place."""
    state = _get_state(ctx)
    message = state.client.delete_document(resource, document_id)
    typer.secho(message, fg=typer.colors.GREEN)


@app.command("add-machine")
def add_machine_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Machine name."),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Company name."),
) -> None:
    """Register a machine."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {"name": name}
    if description is not None:
        payload["description"] = description
    if company is not None:
        payload["companyName"] = company
    render_document("machine", state.client.create_document("machine", payload))


@app.command("add-sensor")
def add_sensor_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Sensor name."),
    unit: str = typer.Argument(..., help="Unit of measurement."),
    machine_id: str = typer.Argument(..., help="Identifier of the hosting machine."),
    min_value: float = typer.Option(..., "--min", help="Lowest measurable value."),
    max_value: float = typer.Option(..., "--max", help="Highest measurable value."),
) -> None:
    """Attach a sensor to a machine."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {
        "name": name,
        "unitOfMeasurement": unit,
        "minValue": min_value,
        "maxValue": max_value,
        "machine": machine_id,
    }
    render_document("sensor", state.client.create_document("sensor", payload))


@app.command("record")
def record_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Identifier of the emitting sensor."),
    value: float = typer.Argument(..., help="Calibrated value."),
    raw_value: float = typer.Argument(..., help="Uncalibrated value."),
) -> None:
    """Record one sensor data point."""
    state = _get_state(ctx)
    payload = {"sensor": sensor_id, "value": value, "rawValue": raw_value}
    render_document("sensor-data", state.client.create_document("sensor-data", payload))


@app.command("machine-sensors")
def machine_sensors_command(
    ctx: typer.Context,
    machine_id: str = typer.Argument(..., help="Identifier of the machine."),
) -> None:
    """List the sensors attached to a machine."""
    state = _get_state(ctx)
    render_documents("sensor", state.client.machine_sensors(machine_id))


@app.command("update")
def update_command(
    ctx: typer.Context,
    resource: str = typer.Argument(..., callback=_check_resource),
    document_id: str = typer.Argument(..., help="Identifier of the entry."),
    assignments: List[str] = typer.Option(
        ..., "--set", "-s", help="FIELD=VALUE pair to change; repeatable."
    ),
) -> None:
    """Partially update an entry."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {}
    for assignment in assignments:
        field, separator, value = assignment.partition("=")
        if not separator or not field.strip():
            raise typer.BadParameter(f"Expected FIELD=VALUE, got {assignment!r}.")
        payload[field.strip()] = value
    render_document(resource, state.client.update_document(resource, document_id, payload))

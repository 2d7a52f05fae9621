"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import typer

from mtsics_sim.console import HELP_TEXT, Console
from mtsics_sim.core.errors import SimulatorError
from mtsics_sim.core.model import ConnectionState, Event, EventKind
from mtsics_sim.core.service import DEFAULT_BAUDRATE, DEFAULT_PORT, LOOPBACK_ADDRESS, SimulatorService
from mtsics_sim.transports.loopback import LoopbackTransport

app = typer.Typer(help="Mettler Toledo MT-SICS balance simulator")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _echo_event(event: Event) -> None:
    typer.echo(f"Event->{event.kind}: {event.utc} {event.payload}", err=event.kind is EventKind.ERROR)


@app.command("serve")
def serve(
    port: str = typer.Option(DEFAULT_PORT, "--port", envvar="TTY", help="Serial device path"),
    baudrate: int = typer.Option(DEFAULT_BAUDRATE, "--baudrate", envvar="BAUDRATE", help="Baud rate"),
    profile: Path | None = typer.Option(None, "--profile", help="Instrument profile YAML file"),
    trace: bool = typer.Option(False, "--trace", help="Print rx/tx traffic"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Answer MT-SICS commands on a serial port until interrupted."""
    setup_logging(log_level)
    try:
        service = SimulatorService(profile_path=profile, baudrate=baudrate)
    except SimulatorError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    closed = threading.Event()

    def _on_state(event: Event) -> None:
        _echo_event(event)
        if event.payload == ConnectionState.CLOSED:
            closed.set()

    service.watch((EventKind.ERROR,), _echo_event)
    service.watch((EventKind.STATE,), _on_state)
    if trace:
        service.watch((EventKind.RX, EventKind.TX), _echo_event)

    if not service.start(port):
        service.stop()
        raise typer.Exit(code=1)
    try:
        while not closed.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()


@app.command("console")
def console(
    profile: Path | None = typer.Option(None, "--profile", help="Instrument profile YAML file"),
    trace: bool = typer.Option(False, "--trace", help="Print engine events"),
) -> None:
    """Interactive session against a simulated loopback connection."""
    loopback = LoopbackTransport()
    try:
        service = SimulatorService(profile_path=profile, transport=loopback)
    except SimulatorError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if trace:
        service.watch(tuple(EventKind), _echo_event)
    typer.echo(HELP_TEXT)
    session = Console(service.engine, loopback, address=LOOPBACK_ADDRESS, echo=typer.echo)
    try:
        session.run(lambda: input("> "))
    finally:
        service.stop()


@app.command("query")
def query(
    commands: list[str] = typer.Argument(..., help="Command lines, e.g. S I4 M02"),
    profile: Path | None = typer.Option(None, "--profile", help="Instrument profile YAML file"),
) -> None:
    """Print the response the simulator gives to each command."""
    try:
        service = SimulatorService(profile_path=profile, transport=LoopbackTransport())
        for response in service.query(commands):
            typer.echo(response)
        service.stop()
    except SimulatorError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("profile")
def show_profile(
    profile: Path | None = typer.Option(None, "--profile", help="Instrument profile YAML file"),
) -> None:
    """Show the resolved instrument profile."""
    try:
        service = SimulatorService(profile_path=profile, transport=LoopbackTransport())
    except SimulatorError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    loaded = service.profile
    typer.echo(f"Source: {service.profile_source}")
    typer.echo(f"  make: {loaded.make}")
    typer.echo(f"  model: {loaded.model}")
    typer.echo(f"  type: {loaded.type}")
    typer.echo(f"  serial_number: {loaded.serial_number}")
    typer.echo(f"  firmware_rev: {loaded.firmware_rev}")
    typer.echo("  configuration:")
    typer.echo(f"    weigh_mode: {loaded.configuration.weigh_mode}")
    typer.echo(f"    environmental_stability: {loaded.configuration.environmental_stability}")
    typer.echo(f"    auto_zero_mode: {loaded.configuration.auto_zero_mode}")
    typer.echo(f"    standby_timeout: {loaded.configuration.standby_timeout}")


@app.command("commands")
def list_commands(
    profile: Path | None = typer.Option(None, "--profile", help="Instrument profile YAML file"),
) -> None:
    """List the commands with dedicated responses."""
    try:
        service = SimulatorService(profile_path=profile, transport=LoopbackTransport())
    except SimulatorError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    for rule in service.list_commands():
        typer.echo(f"{rule.command_id}: {rule.description}")
    typer.echo("Any other command is acknowledged as '<command> A'")


def run() -> None:
    app()


if __name__ == "__main__":
    run()

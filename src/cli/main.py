"""CLI principal (Typer + Rich).

Por qué la CLI es delgada:
- Solo traduce flags a `AppSettings`, arranca el motor y pinta resultados.
- Toda la lógica de resolución vive en `core.services`.
"""

from __future__ import annotations

import asyncio
import json
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from adapters.interfaces import list_interfaces
from adapters.shared_state import SharedStateFile
from cli.doctor import app as doctor_app
from cli.ui_components import (
    build_cached_panel,
    build_interfaces_table,
    build_snapshot_table,
    print_banner,
    reachability_notice,
)
from core.config import AppSettings, reset_user_toggles, write_user_env_vars
from core.domain.models import FETCHING, GeoInfo, IdentitySnapshot, ReachabilityEvent
from core.services.engine import IdentityEngine, build_engine

app = typer.Typer(
    no_args_is_help=True,
    help="Resolve and watch this host's public IP, direct IP and connection kind.",
)
app.add_typer(doctor_app, name="doctor")

_console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every lookup attempt."),
) -> None:
    _setup_logging(verbose)


async def _resolve_once(settings: AppSettings) -> tuple[IdentitySnapshot, GeoInfo | None, GeoInfo | None]:
    engine = build_engine(settings)
    await engine.refresh(reason="cli")
    await engine.stop()
    store = engine.store
    return store.snapshot, store.geo, store.direct_geo


@app.command()
def resolve(
    json_output: bool = typer.Option(False, "--json", help="Print the snapshot as JSON."),
    no_banner: bool = typer.Option(False, "--no-banner", help="Skip the banner."),
) -> None:
    """Resolve the identity once (external IP, direct IP, connection kind)."""

    settings = AppSettings()
    snapshot, geo, direct_geo = asyncio.run(_resolve_once(settings))

    if json_output:
        typer.echo(snapshot.model_dump_json(indent=2))
        return
    if not no_banner:
        print_banner(_console)
    _console.print(build_snapshot_table(snapshot, geo, direct_geo))


def _apply_toggles(*, reset: bool, location: bool | None, notifications: bool | None) -> None:
    # reset primero; luego el resto de flags
    if reset:
        path = reset_user_toggles()
        _console.print(f"[green]Reset configuration:[/green] {path}")

    updates: dict[str, str | None] = {}
    if location is not None:
        updates["NETIDENT_SHOW_LOCATION"] = str(location).lower()
    if notifications is not None:
        updates["NETIDENT_USE_NOTIFICATIONS"] = str(notifications).lower()
    if updates:
        path = write_user_env_vars(updates)
        _console.print(f"[green]Saved settings to:[/green] {path}")


async def _watch(engine: IdentityEngine, settings: AppSettings) -> None:
    store = engine.store
    last_shown: tuple[str, str, str] | None = None

    def on_snapshot(snapshot: IdentitySnapshot) -> None:
        nonlocal last_shown
        if snapshot.external_ip == FETCHING:
            return
        key = (snapshot.external_ip, snapshot.direct_ip, snapshot.connection_kind.value)
        if key == last_shown:
            return
        last_shown = key
        _console.print(build_snapshot_table(snapshot, store.geo, store.direct_geo))
        if store.clear_changed():
            _console.print(f"[yellow]IP changed:[/yellow] {snapshot.prior_ip} -> {snapshot.external_ip}")

    def on_reachability(event: ReachabilityEvent) -> None:
        if settings.use_notifications and not event.confirmed:
            _console.print(f"[cyan]{reachability_notice(event, store.snapshot)}[/cyan]")

    store.subscribe(on_snapshot)
    engine.monitor.subscribe(on_reachability)

    await engine.start()
    try:
        await asyncio.Event().wait()
    finally:
        await engine.stop()


@app.command()
def watch(
    reset: bool = typer.Option(False, "--reset", "-R", help="Reset the optional toggles to defaults."),
    location: bool | None = typer.Option(
        None,
        "--location/--no-location",
        help="Enable/disable geolocation enrichment (persisted).",
    ),
    notifications: bool | None = typer.Option(
        None,
        "--notifications/--no-notifications",
        help="Enable/disable connectivity notices (persisted).",
    ),
    interval: float | None = typer.Option(
        None,
        "--interval",
        min=1.0,
        help="Periodic refresh interval in seconds (this run only).",
    ),
) -> None:
    """Keep the identity current, reacting to network changes until Ctrl+C."""

    _apply_toggles(reset=reset, location=location, notifications=notifications)

    settings = AppSettings()
    if interval is not None:
        settings = settings.model_copy(update={"refresh_interval_seconds": interval})

    print_banner(_console)
    engine = build_engine(settings)
    try:
        asyncio.run(_watch(engine, settings))
    except KeyboardInterrupt:
        _console.print("[dim]Stopped.[/dim]")


@app.command()
def interfaces(
    ipv6: bool = typer.Option(False, "--ipv6", help="Include IPv6 addresses."),
    json_output: bool = typer.Option(False, "--json", help="Print the interfaces as JSON."),
) -> None:
    """List active local interfaces (IP, type, MAC, gateway, app)."""

    found = list_interfaces(include_ipv6=ipv6)
    if json_output:
        typer.echo(json.dumps([iface.model_dump() for iface in found], ensure_ascii=False, indent=2))
        return
    if not found:
        _console.print("[dim]No active interfaces with an address.[/dim]")
        return
    _console.print(build_interfaces_table(found))


@app.command()
def history() -> None:
    """Show recorded IP transitions (new, prior)."""

    lines = SharedStateFile.from_settings(AppSettings()).read_history()
    if not lines:
        _console.print("[dim]No IP history recorded yet.[/dim]")
        return

    table = Table(title="IP History")
    table.add_column("#", style="dim", justify="right")
    table.add_column("New IP", style="bold")
    table.add_column("Prior IP", style="white")
    for idx, line in enumerate(lines, start=1):
        new_ip, _, prior_ip = line.partition(", ")
        table.add_row(str(idx), new_ip, prior_ip)
    _console.print(table)


@app.command()
def cached() -> None:
    """Show the shared state record read by external widgets."""

    record = SharedStateFile.from_settings(AppSettings()).read_identity()
    if record is None:
        _console.print("[dim]No shared state written yet.[/dim]")
        raise typer.Exit(code=1)
    _console.print(build_cached_panel(record))


def run() -> None:
    app()

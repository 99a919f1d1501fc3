"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en `resolve`, `watch` y `cached`.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import (
    NOT_AVAILABLE,
    CachedIdentity,
    ConnectionKind,
    GeoInfo,
    IdentitySnapshot,
    LocalInterface,
    ReachabilityEvent,
    ReachabilityState,
    is_sentinel,
)

_KIND_STYLES: dict[ConnectionKind, str] = {
    ConnectionKind.DIRECT: "green",
    ConnectionKind.PROXY: "yellow",
    ConnectionKind.VPN: "magenta",
    ConnectionKind.UNKNOWN: "dim",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("netident", style="bold cyan")
    subtitle = Text("IP pública • IP directa • Proxy / VPN", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def _ip_text(value: str) -> Text:
    return Text(value, style="red" if is_sentinel(value) else "bold white")


def _location(geo: GeoInfo | None) -> str:
    if geo is None:
        return ""
    return ", ".join(part for part in (geo.city, geo.country) if part)


def build_snapshot_table(
    snapshot: IdentitySnapshot,
    geo: GeoInfo | None = None,
    direct_geo: GeoInfo | None = None,
) -> Table:
    """Tabla Rich con el snapshot de identidad."""

    table = Table(title="Network Identity", show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("External IP", _ip_text(snapshot.external_ip))
    table.add_row("Direct IP", _ip_text(snapshot.direct_ip))
    if _location(direct_geo):
        table.add_row("Direct location", Text(_location(direct_geo), style="dim"))
    table.add_row("Prior IP", Text(snapshot.prior_ip, style="dim"))
    kind = snapshot.connection_kind
    table.add_row("Connection", Text(kind.value, style=_KIND_STYLES[kind]))
    if _location(geo):
        table.add_row("Location", _location(geo))
    if snapshot.has_changed:
        table.add_row("Changed", Text("yes", style="bold yellow"))
    updated = snapshot.last_updated.isoformat(timespec="seconds") if snapshot.last_updated else "-"
    table.add_row("Updated", Text(updated, style="dim"))
    return table


def build_cached_panel(record: CachedIdentity) -> Panel:
    """Panel con el registro compartido (lo que leen widgets externos)."""

    body = Text()
    body.append(f"{record.ip}\n", style="bold")
    location = ", ".join(part for part in (record.city, record.country) if part)
    if location:
        body.append(f"{location}\n")
    body.append(f"Connection: {record.connection_type.value}", style=_KIND_STYLES[record.connection_type])
    if record.is_proxy:
        body.append(" (proxy)", style="yellow")
    if record.last_update:
        body.append(f"\nUpdated: {record.last_update.isoformat(timespec='seconds')}", style="dim")
    return Panel(body, title=Text("Shared state", style="bold cyan"), border_style="cyan")


def reachability_notice(event: ReachabilityEvent, snapshot: IdentitySnapshot) -> str:
    """Texto del aviso de conectividad."""

    if event.state is ReachabilityState.UNAVAILABLE:
        return "System has lost network connection."
    if snapshot.external_ip == NOT_AVAILABLE:
        return "System has no internet connection."
    return "System internet connection is now working."


def build_interfaces_table(interfaces: list[LocalInterface]) -> Table:
    """Tabla Rich con las interfaces locales activas."""

    table = Table(title="Local Interfaces")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("IP", style="bold white")
    table.add_column("Type")
    table.add_column("MAC", style="dim")
    table.add_column("Gateway")
    table.add_column("App", style="magenta")
    for iface in interfaces:
        table.add_row(iface.name, iface.ip_address, iface.kind, iface.mac_address, iface.gateway, iface.app)
    return table

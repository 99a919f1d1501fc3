"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import shutil
import sys

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import HttpConnectivityCheck
from adapters.link_probe import default_link_probe
from adapters.system_proxy import default_proxy_probe
from core.config import AppSettings, get_user_env_file
from core.errors import FetchError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_tool(name: str, override: str | None) -> tuple[bool, str]:
    path = override or shutil.which(name)
    if path:
        return True, path
    return False, "not found"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="netident Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Tools
    ok_curl, detail_curl = _check_tool("curl", settings.curl_path)
    table.add_row("curl (proxy bypass)", "OK" if ok_curl else "FALLBACK", detail_curl if ok_curl else "httpx without env proxies")
    ok_dig, detail_dig = _check_tool("dig", settings.dig_path)
    table.add_row("dig (DNS fallback)", "OK" if ok_dig else "MISSING", detail_dig)
    if sys.platform == "darwin":
        ok_scutil, detail_scutil = _check_tool("scutil", settings.scutil_path)
        table.add_row("scutil", "OK" if ok_scutil else "MISSING", detail_scutil)

    # Link + proxies
    flags = default_link_probe(settings).read_flags()
    table.add_row(
        "Link",
        "OK" if flags.is_reachable else "DOWN",
        f"reachable={flags.reachable} connection_required={flags.connection_required}",
    )
    try:
        proxies = default_proxy_probe(settings).read_flags()
        detail_proxy = f"http={proxies.http_enabled} https={proxies.https_enabled} socks={proxies.socks_enabled}"
        table.add_row("System proxy", "SET" if proxies.any_enabled else "NONE", detail_proxy)
    except FetchError as exc:
        table.add_row("System proxy", "FAIL", str(exc))

    # Connectivity (best-effort)
    ok_http = asyncio.run(HttpConnectivityCheck(settings)())
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", settings.probe_url)

    table.add_row("State dir", "OK", str(settings.resolved_state_dir()))
    table.add_row("User config", "OK" if get_user_env_file().exists() else "DEFAULTS", str(get_user_env_file()))

    _console.print(table)

    if not ok_dig:
        _console.print(
            "\n[yellow]Note:[/yellow] Without `dig` the DNS fallback is skipped when every HTTP service fails."
        )


@app.command(name="show-config")
def show_config() -> None:
    """Print the effective settings."""

    settings = AppSettings()
    table = Table(title="Effective settings")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    for key, value in settings.model_dump().items():
        table.add_row(key, "" if value is None else str(value))
    _console.print(table)

"""Flags de alcanzabilidad del enlace.

- macOS: `scutil -r 0.0.0.0` ("Reachable", "Reachable,Connection Required",
  "Not Reachable"), equivalente a los flags de SCNetworkReachability.
- Resto: existe una ruta de salida si un socket UDP puede "conectarse" a una
  IP pública (no envía nada). Nunca hay "connection required" aquí.
"""

from __future__ import annotations

import shutil
import socket
import subprocess
import sys

from core.config import AppSettings
from core.domain.models import LinkFlags

ROUTE_PROBE_ADDRESS = ("8.8.8.8", 53)


def parse_scutil_reachability(text: str) -> LinkFlags:
    tokens = {token.strip() for token in text.strip().split(",")}
    return LinkFlags(
        reachable="Reachable" in tokens,
        connection_required="Connection Required" in tokens,
    )


class ScutilLinkProbe:
    def __init__(self, scutil_path: str) -> None:
        self._scutil_path = scutil_path

    def read_flags(self) -> LinkFlags:
        try:
            output = subprocess.check_output(
                [self._scutil_path, "-r", "0.0.0.0"],
                timeout=2,
                stderr=subprocess.DEVNULL,
            ).decode("utf-8", "ignore")
        except (subprocess.SubprocessError, OSError):
            return LinkFlags()
        return parse_scutil_reachability(output)


class RouteLinkProbe:
    def __init__(self, address: tuple[str, int] = ROUTE_PROBE_ADDRESS) -> None:
        self._address = address

    def read_flags(self) -> LinkFlags:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.settimeout(0.1)
                s.connect(self._address)
                local_ip = s.getsockname()[0]
        except OSError:
            return LinkFlags()
        return LinkFlags(reachable=local_ip not in ("0.0.0.0", "127.0.0.1"))


def default_link_probe(settings: AppSettings | None = None) -> ScutilLinkProbe | RouteLinkProbe:
    settings = settings or AppSettings()
    if sys.platform == "darwin":
        scutil = settings.scutil_path or shutil.which("scutil")
        if scutil:
            return ScutilLinkProbe(scutil)
    return RouteLinkProbe()

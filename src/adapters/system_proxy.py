"""Lectura de los flags de proxy del sistema (solo HTTP/HTTPS/SOCKS).

- macOS: `scutil --proxy` (misma fuente que la configuración de red del SO).
- Resto: variables de entorno vía `urllib.request.getproxies()`.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from urllib.request import getproxies

from core.config import AppSettings
from core.domain.models import ProxyFlags
from core.errors import FetchError


def parse_scutil_proxies(text: str) -> ProxyFlags:
    """Interpreta la salida de `scutil --proxy` (`HTTPEnable : 1`, ...)."""

    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        if " : " not in raw_line:
            continue
        key, value = raw_line.split(" : ", 1)
        values[key.strip()] = value.strip()
    return ProxyFlags(
        http_enabled=values.get("HTTPEnable") == "1",
        https_enabled=values.get("HTTPSEnable") == "1",
        socks_enabled=values.get("SOCKSEnable") == "1",
    )


class ScutilProxyProbe:
    def __init__(self, scutil_path: str) -> None:
        self._scutil_path = scutil_path

    def read_flags(self) -> ProxyFlags:
        try:
            output = subprocess.check_output(
                [self._scutil_path, "--proxy"],
                timeout=2,
                stderr=subprocess.DEVNULL,
            ).decode("utf-8", "ignore")
        except (subprocess.SubprocessError, OSError) as exc:
            raise FetchError("scutil --proxy", str(exc)) from exc
        return parse_scutil_proxies(output)


class EnvProxyProbe:
    def read_flags(self) -> ProxyFlags:
        proxies = {k.lower(): v for k, v in getproxies().items()}
        all_proxy = proxies.get("all", "")
        return ProxyFlags(
            http_enabled=bool(proxies.get("http")),
            https_enabled=bool(proxies.get("https")),
            socks_enabled=bool(proxies.get("socks")) or all_proxy.startswith("socks"),
        )


def default_proxy_probe(settings: AppSettings | None = None) -> ScutilProxyProbe | EnvProxyProbe:
    settings = settings or AppSettings()
    if sys.platform == "darwin":
        scutil = settings.scutil_path or shutil.which("scutil")
        if scutil:
            return ScutilProxyProbe(scutil)
    return EnvProxyProbe()

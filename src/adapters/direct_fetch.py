"""Canales que evitan el proxy del sistema.

Dos implementaciones de `DirectFetcher`:
- `CurlDirectFetcher`: `curl -s --noproxy '*'` en un subprocess. Garantiza el
  bypass aunque el proxy esté configurado fuera de las variables de entorno.
- `HttpxDirectFetcher`: httpx con `trust_env=False`, para plataformas sin curl.

Cualquier fallo (ejecutable ausente, exit code != 0, timeout, salida vacía) se
normaliza a `FetchError` para que el resolver avance al siguiente servicio.
"""

from __future__ import annotations

import asyncio
import shutil

import httpx

from adapters.http_client import build_direct_client
from core.config import AppSettings
from core.errors import FetchError

# Margen extra sobre `--max-time` antes de matar el proceso.
_KILL_GRACE_SECONDS = 1.0


class CurlDirectFetcher:
    def __init__(self, curl_path: str) -> None:
        self._curl_path = curl_path

    async def fetch_bypassing_proxy(self, url: str, *, timeout: float) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self._curl_path,
                "-s",
                "--noproxy",
                "*",
                "--max-time",
                f"{timeout:g}",
                url,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise FetchError(url, f"cannot run curl: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout + _KILL_GRACE_SECONDS)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise FetchError(url, "curl timed out") from exc

        if process.returncode != 0:
            raise FetchError(url, f"curl exited with {process.returncode}")
        body = stdout.decode("utf-8", errors="replace")
        if not body.strip():
            raise FetchError(url, "empty response")
        return body


class HttpxDirectFetcher:
    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    async def fetch_bypassing_proxy(self, url: str, *, timeout: float) -> str:
        try:
            async with build_direct_client(self._settings, timeout=timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc)) from exc

        if response.status_code >= 400:
            raise FetchError(url, f"HTTP {response.status_code}")
        if not response.text.strip():
            raise FetchError(url, "empty response")
        return response.text


def default_direct_fetcher(settings: AppSettings | None = None) -> CurlDirectFetcher | HttpxDirectFetcher:
    """curl si está disponible; si no, httpx sin proxies del entorno."""

    settings = settings or AppSettings()
    curl = settings.curl_path or shutil.which("curl")
    if curl:
        return CurlDirectFetcher(curl)
    return HttpxDirectFetcher(settings)

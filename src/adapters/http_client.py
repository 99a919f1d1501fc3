"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y la política de proxy (sistema vs directo).
- Facilita testeo: respx intercepta cualquier cliente creado aquí.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def _default_headers(settings: AppSettings, extra_headers: dict[str, str] | None) -> dict[str, str]:
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "text/plain,application/json;q=0.9,*/*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return headers


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` que respeta el proxy del sistema.

    Por qué un builder:
    - Centraliza timeouts/headers para que todos los servicios se comporten igual.
    - `trust_env=True` (default de httpx): las variables HTTP(S)_PROXY aplican,
      igual que el transporte por defecto del sistema.
    """

    settings = settings or AppSettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=_default_headers(settings, extra_headers),
    )


def build_direct_client(
    settings: AppSettings | None = None,
    *,
    timeout: float | None = None,
) -> httpx.AsyncClient:
    """Cliente que ignora proxies del entorno (`trust_env=False`)."""

    settings = settings or AppSettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout or settings.direct_timeout_seconds),
        follow_redirects=True,
        headers=_default_headers(settings, None),
        trust_env=False,
    )


class HttpConnectivityCheck:
    """Sonda de conectividad real: GET ligero que debe devolver HTTP 200."""

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    async def __call__(self) -> bool:
        try:
            async with build_async_client(self._settings) as client:
                response = await client.get(
                    self._settings.probe_url,
                    timeout=self._settings.probe_timeout_seconds,
                )
        except httpx.HTTPError:
            return False
        return response.status_code == 200

"""Enriquecimiento geográfico best-effort (ipwho.is).

No es autoritativo: el resultado solo lo consumen colaboradores de
presentación. Cualquier fallo devuelve `None`.
"""

from __future__ import annotations

from typing import Any

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import GeoInfo


class IpWhoIsLocator:
    _base_url = "https://ipwho.is"

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    async def locate(self, ip: str) -> GeoInfo | None:
        url = f"{self._base_url}/{ip}"
        try:
            async with build_async_client(self._settings, extra_headers={"Accept": "application/json"}) as client:
                resp = await client.get(url)
        except httpx.HTTPError:
            return None

        if resp.status_code != 200:
            return None
        try:
            data: Any = resp.json()
        except ValueError:
            return None
        if not isinstance(data, dict) or data.get("success") is False:
            return None

        country = data.get("country")
        city = data.get("city")
        if not isinstance(country, str) or not isinstance(city, str):
            return None
        code = data.get("country_code")
        return GeoInfo(
            country=country,
            country_code=code if isinstance(code, str) else "",
            city=city,
        )

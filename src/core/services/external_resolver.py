"""Public IP resolution with ordered fallback.

The external-service list is walked strictly in order inside one task: no
parallel fan-out, the first parseable answer wins. When every HTTP service
fails, a direct DNS query is attempted; when that fails too, the result is a
sentinel ("Proxy Error" if a system proxy is configured, "N/A" otherwise).
`resolve()` never raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

import httpx

from adapters.dns_lookup import DigLookup
from adapters.http_client import build_async_client
from adapters.system_proxy import default_proxy_probe
from core.config import AppSettings
from core.domain.endpoints import EXTERNAL_ENDPOINTS, ServiceEndpoint
from core.domain.models import NOT_AVAILABLE, PROXY_ERROR
from core.domain.parsing import parse_response
from core.errors import FetchError
from core.interfaces.network import DnsIPLookup, ProxyFlagsProbe

logger = logging.getLogger(__name__)

ClientFactory = Callable[[AppSettings], httpx.AsyncClient]


class ExternalIPResolver:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        endpoints: Sequence[ServiceEndpoint] = EXTERNAL_ENDPOINTS,
        dns_lookup: DnsIPLookup | None = None,
        proxy_probe: ProxyFlagsProbe | None = None,
        client_factory: ClientFactory = build_async_client,
    ) -> None:
        self._settings = settings or AppSettings()
        self._endpoints = tuple(endpoints)
        self._dns_lookup = dns_lookup or DigLookup(self._settings)
        self._proxy_probe = proxy_probe or default_proxy_probe(self._settings)
        self._client_factory = client_factory

    async def resolve(self) -> str:
        async with self._client_factory(self._settings) as client:
            for endpoint in self._endpoints:
                ip = await self._try_endpoint(client, endpoint)
                if ip:
                    logger.info("External IP %s via %s", ip, endpoint)
                    return ip

        logger.info("All external IP services failed, trying DNS fallback")
        ip = await self._try_dns()
        if ip:
            logger.info("External IP %s via DNS fallback", ip)
            return ip

        if await self._system_proxy_configured():
            logger.warning("External IP lookup failed with a system proxy configured")
            return PROXY_ERROR
        logger.warning("External IP lookup failed")
        return NOT_AVAILABLE

    async def _try_endpoint(self, client: httpx.AsyncClient, endpoint: ServiceEndpoint) -> str:
        try:
            response = await client.get(
                endpoint.url_or_host,
                timeout=self._settings.http_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.debug("Unable to get external IP from %s: %s", endpoint, exc)
            return ""

        if response.status_code >= 400:
            logger.debug("External IP service %s answered HTTP %d", endpoint, response.status_code)
            return ""

        body = response.text or ""
        ip = parse_response(body, endpoint.response_format)
        if not ip:
            logger.debug("Unparseable answer from %s", endpoint)
        return ip

    async def _try_dns(self) -> str:
        try:
            return await self._dns_lookup.lookup() or ""
        except (FetchError, OSError, asyncio.TimeoutError) as exc:
            logger.debug("DNS fallback failed: %s", exc)
            return ""

    async def _system_proxy_configured(self) -> bool:
        try:
            flags = await asyncio.to_thread(self._proxy_probe.read_flags)
        except (FetchError, OSError) as exc:
            logger.debug("Could not read system proxy flags: %s", exc)
            return False
        return flags.any_enabled

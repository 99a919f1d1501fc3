"""Direct IP probe.

Learns the address a system proxy or VPN would otherwise mask by fetching a
separate list of echo services through a channel that bypasses any configured
proxy. Exhausting the list yields "N/A", a valid steady state when there is no
masked path to detect.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from adapters.direct_fetch import default_direct_fetcher
from core.config import AppSettings
from core.domain.endpoints import DIRECT_ENDPOINTS, ServiceEndpoint
from core.domain.models import NOT_AVAILABLE
from core.domain.parsing import parse_response
from core.errors import FetchError
from core.interfaces.network import DirectFetcher

logger = logging.getLogger(__name__)


class DirectIPResolver:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        endpoints: Sequence[ServiceEndpoint] = DIRECT_ENDPOINTS,
        fetcher: DirectFetcher | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._endpoints = tuple(endpoints)
        self._fetcher = fetcher or default_direct_fetcher(self._settings)

    async def resolve(self) -> str:
        for endpoint in self._endpoints:
            try:
                body = await self._fetcher.fetch_bypassing_proxy(
                    endpoint.url_or_host,
                    timeout=self._settings.direct_timeout_seconds,
                )
            except (FetchError, OSError, asyncio.TimeoutError) as exc:
                logger.debug("Failed to get direct IP from %s: %s", endpoint, exc)
                continue

            ip = parse_response(body, endpoint.response_format)
            if ip:
                logger.info("Direct IP %s via %s", ip, endpoint)
                return ip
            logger.debug("Unparseable direct answer from %s", endpoint)

        logger.info("All direct IP services failed")
        return NOT_AVAILABLE

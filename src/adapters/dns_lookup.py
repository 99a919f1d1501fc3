"""DNS de respaldo: `dig +short myip.opendns.com @208.67.222.222`.

Se consulta el resolver público directamente, sin depender del DNS local.
"""

from __future__ import annotations

import asyncio
import shutil

from core.config import AppSettings
from core.domain.endpoints import DNS_FALLBACK_ENDPOINT, DNS_FALLBACK_RESOLVER, ServiceEndpoint
from core.domain.parsing import parse_response
from core.errors import FetchError


class DigLookup:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        endpoint: ServiceEndpoint = DNS_FALLBACK_ENDPOINT,
        resolver: str = DNS_FALLBACK_RESOLVER,
    ) -> None:
        self._settings = settings or AppSettings()
        self._endpoint = endpoint
        self._resolver = resolver

    def _command(self, dig: str) -> list[str]:
        timeout = max(1, int(round(self._settings.dns_timeout_seconds)))
        return [
            dig,
            "+short",
            f"+time={timeout}",
            "+tries=1",
            self._endpoint.url_or_host,
            f"@{self._resolver}",
        ]

    async def lookup(self) -> str | None:
        dig = self._settings.dig_path or shutil.which("dig")
        if not dig:
            raise FetchError(str(self._endpoint), "dig not found")

        try:
            process = await asyncio.create_subprocess_exec(
                *self._command(dig),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise FetchError(str(self._endpoint), f"cannot run dig: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(),
                self._settings.dns_timeout_seconds + 1.0,
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise FetchError(str(self._endpoint), "dig timed out") from exc

        if process.returncode != 0:
            raise FetchError(str(self._endpoint), f"dig exited with {process.returncode}")

        output = stdout.decode("utf-8", errors="replace")
        return parse_response(output, self._endpoint.response_format) or None

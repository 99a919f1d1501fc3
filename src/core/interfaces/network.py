"""Contratos de acceso a red y al sistema operativo.

Por qué Protocol:
- Contrato estructural (duck typing) sin herencia rígida.
- Una plataforma sin `curl` puede implementar el bypass de proxy con un
  cliente directo; los tests usan fakes sin tocar la red.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import GeoInfo, LinkFlags, ProxyFlags


@runtime_checkable
class DirectFetcher(Protocol):
    """Canal que ignora cualquier proxy configurado en el sistema."""

    async def fetch_bypassing_proxy(self, url: str, *, timeout: float) -> str:
        """Devuelve el cuerpo de la respuesta o lanza `FetchError`."""

        ...


@runtime_checkable
class DnsIPLookup(Protocol):
    """Consulta DNS directa a un resolver público ("¿cuál es mi IP?")."""

    async def lookup(self) -> str | None:
        ...


@runtime_checkable
class ProxyFlagsProbe(Protocol):
    def read_flags(self) -> ProxyFlags:
        ...


@runtime_checkable
class LinkFlagsProbe(Protocol):
    """Lectura síncrona de los flags de enlace actuales."""

    def read_flags(self) -> LinkFlags:
        ...


@runtime_checkable
class ConnectivityCheck(Protocol):
    """Sonda ligera de conectividad real a internet."""

    async def __call__(self) -> bool:
        ...


@runtime_checkable
class GeoLocator(Protocol):
    async def locate(self, ip: str) -> GeoInfo | None:
        ...

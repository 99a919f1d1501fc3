"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta de los invariantes (una IP es un dotted-quad o un
  centinela, nunca texto arbitrario) sin acoplar el Core a librerías de I/O.
- Serialización estable para el estado compartido entre procesos.

Nota:
- Estos modelos describen *qué* es la identidad de red, no *cómo* se obtiene.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from core.domain.parsing import is_valid_ipv4

NOT_AVAILABLE = "N/A"
PROXY_ERROR = "Proxy Error"
FETCHING = "Fetching..."

SENTINELS: frozenset[str] = frozenset({NOT_AVAILABLE, PROXY_ERROR, FETCHING})


def is_sentinel(value: str) -> bool:
    return value in SENTINELS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_ip_or_sentinel(value: str) -> str:
    if is_sentinel(value) or is_valid_ipv4(value):
        return value
    raise ValueError(f"not an IPv4 address nor a known sentinel: {value!r}")


class ConnectionKind(str, Enum):
    """How traffic leaves the host."""

    DIRECT = "direct"
    PROXY = "proxy"
    VPN = "vpn"
    UNKNOWN = "unknown"


class ReachabilityState(str, Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class LinkFlags(BaseModel):
    """Flags de bajo nivel del enlace (equivalentes a reachable/connection-required)."""

    model_config = ConfigDict(frozen=True)

    reachable: bool = False
    connection_required: bool = False

    @property
    def is_reachable(self) -> bool:
        return self.reachable and not self.connection_required


class ReachabilityEvent(BaseModel):
    """Señal emitida por el monitor de alcanzabilidad.

    `confirmed` distingue la señal optimista (inmediata) de la confirmada por la
    sonda de conectividad real.
    """

    model_config = ConfigDict(frozen=True)

    state: ReachabilityState
    confirmed: bool = False
    at: datetime = Field(default_factory=utcnow)


class ProxyFlags(BaseModel):
    """Proxies de sistema habilitados (solo HTTP/HTTPS/SOCKS)."""

    model_config = ConfigDict(frozen=True)

    http_enabled: bool = False
    https_enabled: bool = False
    socks_enabled: bool = False

    @property
    def any_enabled(self) -> bool:
        return self.http_enabled or self.https_enabled or self.socks_enabled


class GeoInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    country: str = ""
    country_code: str = ""
    city: str = ""


class HistoryRecord(BaseModel):
    """Transición de IP registrada. Inmutable una vez creada."""

    model_config = ConfigDict(frozen=True)

    new_ip: str
    prior_ip: str
    recorded_at: datetime = Field(default_factory=utcnow)

    def __str__(self) -> str:
        return f"{self.new_ip}, {self.prior_ip}"


class IdentitySnapshot(BaseModel):
    """Última identidad de red conocida del host.

    Por qué `validate_assignment`:
    - El store muta el snapshot in-place; cada asignación vuelve a validar que
      las IPs sean dotted-quads o centinelas.
    """

    model_config = ConfigDict(validate_assignment=True)

    external_ip: str = Field(
        default=NOT_AVAILABLE,
        description="IP pública vista por servicios externos (o centinela).",
    )
    direct_ip: str = Field(
        default=NOT_AVAILABLE,
        description="IP obtenida por un canal que evita el proxy del sistema.",
    )
    prior_ip: str = Field(
        default=NOT_AVAILABLE,
        description="IP externa anterior al último cambio.",
    )
    connection_kind: ConnectionKind = Field(
        default=ConnectionKind.UNKNOWN,
        description="Clasificación del camino de salida.",
    )
    has_changed: bool = Field(
        default=False,
        description="True tras un cambio de IP externa hasta que un consumidor lo limpia.",
    )
    last_updated: datetime | None = Field(
        default=None,
        description="Momento de la última mutación (UTC).",
    )

    @field_validator("external_ip", "direct_ip", "prior_ip")
    @classmethod
    def _ip_or_sentinel(cls, value: str) -> str:
        return _check_ip_or_sentinel(value)


class CachedIdentity(BaseModel):
    """Registro clave-valor compartido con otros procesos (widgets, UI).

    Las claves (alias) son las del registro compartido original.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    ip: str = Field(default=NOT_AVAILABLE, alias="cachedExternalIP")
    country: str = Field(default="", alias="cachedCountry")
    country_code: str = Field(default="", alias="cachedCountryCode")
    city: str = Field(default="", alias="cachedCity")
    last_update: datetime | None = Field(default=None, alias="lastIPUpdateTime")
    is_proxy: bool = Field(default=False, alias="isProxy")
    connection_type: ConnectionKind = Field(default=ConnectionKind.UNKNOWN, alias="connectionType")


class LocalInterface(BaseModel):
    """Interfaz de red local activa (sin loopback)."""

    model_config = ConfigDict(frozen=True)

    name: str
    ip_address: str
    kind: str = Field(default="", description="Tipo legible (Wi-Fi, Ethernet, VPN, ...).")
    mac_address: str = ""
    gateway: str = Field(default="", description="Gateway por defecto asociado a la interfaz.")
    app: str = Field(
        default="",
        description="App probable detrás de una interfaz virtual (VPN, VMware Fusion, ...).",
    )

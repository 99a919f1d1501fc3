"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/subprocess/OS) lean timeouts y rutas de forma
  consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "netident"

# Toggles que la CLI persiste en el .env del usuario (y que `--reset` restaura).
TOGGLE_DEFAULTS: dict[str, str] = {
    "NETIDENT_SHOW_LOCATION": "true",
    "NETIDENT_USE_NOTIFICATIONS": "false",
}


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def read_user_env_vars(env_path: Path | None = None) -> dict[str, str]:
    env_path = env_path or get_user_env_file()
    if not env_path.exists():
        return {}
    try:
        return _parse_env_lines(env_path.read_text(encoding="utf-8"))
    except OSError:
        return {}


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing = read_user_env_vars(env_path)
    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# netident user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def reset_user_toggles(env_path: Path | None = None) -> Path:
    """Restaura los toggles opcionales a sus valores por defecto."""

    return write_user_env_vars(dict(TOGGLE_DEFAULTS), env_path)


class AppSettings(BaseSettings):
    """Configuración central del motor de identidad de red.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="NETIDENT_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout por servicio de eco de IP (segundos).",
    )
    direct_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout por servicio de IP directa (sin proxy).",
    )
    dns_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Timeout de la consulta DNS de respaldo.",
    )
    probe_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Espera antes de la sonda de conectividad real tras un cambio de enlace.",
    )
    probe_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout de la sonda de conectividad.",
    )
    probe_url: str = Field(
        default="https://1.1.1.1/cdn-cgi/trace",
        min_length=8,
        description="URL ligera usada para confirmar conectividad a internet.",
    )
    refresh_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Intervalo del refresco periódico (respaldo de frescura).",
    )
    link_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Cada cuánto se muestrean los flags de enlace.",
    )
    user_agent: str = Field(
        default="netident/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para las peticiones HTTP.",
    )

    show_location: bool = Field(
        default=True,
        description="Enriquecer la IP con país/ciudad (geolocalización best-effort).",
    )
    use_notifications: bool = Field(
        default=False,
        description="Mostrar avisos de cambios de conectividad en la CLI.",
    )

    state_dir: Path | None = Field(
        default=None,
        description="Directorio del estado compartido (cache + historial).",
    )
    curl_path: str | None = Field(
        default=None,
        description="Ruta explícita a `curl` (bypass de proxy).",
    )
    dig_path: str | None = Field(
        default=None,
        description="Ruta explícita a `dig` (DNS de respaldo).",
    )
    scutil_path: str | None = Field(
        default=None,
        description="Ruta explícita a `scutil` (macOS: proxies y alcanzabilidad).",
    )

    def resolved_state_dir(self) -> Path:
        return self.state_dir or get_user_config_dir()

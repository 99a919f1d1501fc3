"""Interfaces de red locales: nombre, IP, tipo, MAC, gateway y app asociada.

Por qué psutil:
- `net_if_addrs()` / `net_if_stats()` dan direcciones, MAC y estado en todas
  las plataformas sin parsear `ifconfig` ni `ip addr`.
- La detección de Parallels consulta procesos con `process_iter`.

El gateway por defecto sale de la tabla de rutas (`netstat -nr -f inet` en
macOS, `/proc/net/route` en Linux). Cualquier fallo deja el campo vacío.
"""

from __future__ import annotations

import shutil
import socket
import struct
import subprocess
import sys
from pathlib import Path

import psutil

from core.domain.models import LocalInterface
from core.domain.parsing import is_valid_ipv4

PROC_NET_ROUTE = Path("/proc/net/route")

# Prefijo de nombre -> tipo, para plataformas sin `networksetup`.
_KIND_BY_PREFIX: tuple[tuple[str, str], ...] = (
    ("wl", "Wi-Fi"),
    ("eth", "Ethernet"),
    ("en", "Ethernet"),
    ("utun", "VPN"),
    ("tun", "VPN"),
    ("wg", "VPN"),
    ("tap", "Virtual TAP"),
    ("docker", "Virtual Bridge"),
    ("br", "Virtual Bridge"),
    ("virbr", "Virtual Bridge"),
)

# Prefijo de nombre -> app, solo para interfaces virtuales.
_APP_BY_PREFIX: tuple[tuple[str, str], ...] = (
    ("vmnet", "VMware Fusion"),
    ("utun", "VPN"),
    ("tun", "VPN"),
    ("tap", "Virtual TAP"),
    ("awdl", "AirDrop/AirPlay"),
    ("vboxnet", "VirtualBox"),
)

_PARALLELS_APP = Path("/Applications/Parallels Desktop.app")
_VMWARE_APP = Path("/Applications/VMware Fusion.app")


def parse_netstat_default_routes(text: str) -> dict[str, str]:
    """`default  192.168.1.1  UGScg  en0` -> {"en0": "192.168.1.1"}."""

    routes: dict[str, str] = {}
    for line in text.splitlines():
        if not line.startswith("default"):
            continue
        parts = line.split()
        if len(parts) >= 4 and is_valid_ipv4(parts[1]):
            routes.setdefault(parts[3], parts[1])
    return routes


def parse_proc_net_route(text: str) -> dict[str, str]:
    """Rutas por defecto de `/proc/net/route` (gateway en hex little-endian)."""

    routes: dict[str, str] = {}
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 3 or parts[1] != "00000000":
            continue
        try:
            gateway = socket.inet_ntoa(struct.pack("<L", int(parts[2], 16)))
        except (ValueError, struct.error):
            continue
        if gateway != "0.0.0.0":
            routes.setdefault(parts[0], gateway)
    return routes


def parse_hardware_ports(text: str) -> dict[str, str]:
    """`networksetup -listallhardwareports` -> {"en0": "Wi-Fi", ...}."""

    ports: dict[str, str] = {}
    port = ""
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "Hardware Port":
            port = value.strip()
        elif key.strip() == "Device" and port:
            ports[value.strip()] = port
            port = ""
    return ports


def kind_for_name(name: str, hardware_ports: dict[str, str] | None = None) -> str:
    if hardware_ports and name in hardware_ports:
        return hardware_ports[name]
    for prefix, kind in _KIND_BY_PREFIX:
        if name.startswith(prefix):
            return kind
    return ""


def _parallels_running() -> bool:
    for proc in psutil.process_iter(["name"]):
        name = proc.info.get("name") or ""
        if "prl_disp_service" in name or "Parallels" in name:
            return True
    return False


def app_for_name(name: str) -> str:
    """App probable detrás de una interfaz virtual; "" para las físicas."""

    if name.startswith("bridge"):
        if _PARALLELS_APP.exists() and _parallels_running():
            return "Parallels Desktop"
        if _VMWARE_APP.exists():
            return "VMware Fusion"
        return "Virtual Bridge"
    for prefix, app in _APP_BY_PREFIX:
        if name.startswith(prefix):
            return app
    return ""


def _run(args: list[str]) -> str:
    try:
        return subprocess.check_output(args, timeout=1, stderr=subprocess.DEVNULL).decode("utf-8", "ignore")
    except (subprocess.SubprocessError, OSError):
        return ""


def read_default_gateways() -> dict[str, str]:
    if sys.platform == "darwin":
        netstat = shutil.which("netstat")
        return parse_netstat_default_routes(_run([netstat, "-nr", "-f", "inet"])) if netstat else {}
    try:
        return parse_proc_net_route(PROC_NET_ROUTE.read_text(encoding="utf-8"))
    except OSError:
        return {}


def read_hardware_ports() -> dict[str, str]:
    if sys.platform != "darwin":
        return {}
    networksetup = shutil.which("networksetup")
    return parse_hardware_ports(_run([networksetup, "-listallhardwareports"])) if networksetup else {}


def list_interfaces(*, include_ipv6: bool = False) -> list[LocalInterface]:
    """Interfaces activas (up) con dirección IPv4 (y opcionalmente IPv6)."""

    families = {socket.AF_INET}
    if include_ipv6:
        families.add(socket.AF_INET6)

    stats = psutil.net_if_stats()
    gateways = read_default_gateways()
    hardware_ports = read_hardware_ports()

    interfaces: list[LocalInterface] = []
    for name, addrs in psutil.net_if_addrs().items():
        st = stats.get(name)
        if st is None or not st.isup or "loopback" in (getattr(st, "flags", "") or ""):
            continue
        mac = next((a.address for a in addrs if a.family == psutil.AF_LINK), "")
        for addr in addrs:
            if addr.family not in families or addr.address.startswith(("127.", "::1")):
                continue
            interfaces.append(
                LocalInterface(
                    name=name,
                    ip_address=addr.address.split("%", 1)[0],
                    kind=kind_for_name(name, hardware_ports),
                    mac_address=mac,
                    gateway=gateways.get(name, ""),
                    app=app_for_name(name),
                )
            )
    return interfaces

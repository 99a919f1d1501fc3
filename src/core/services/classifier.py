"""Connection-kind heuristic.

A VPN changes the apparent egress IP without populating the OS-level
HTTP/SOCKS proxy settings; an explicit proxy does populate them. Proxy flags on
their own are not enough: without a differing direct IP the path is direct.
"""

from __future__ import annotations

from core.domain.models import ConnectionKind, ProxyFlags
from core.domain.parsing import is_valid_ipv4


def classify(external_ip: str, direct_ip: str, proxy_flags: ProxyFlags | bool) -> ConnectionKind:
    """Pure function of the external IP, the direct IP and the proxy flags.

    Returns `UNKNOWN` only when there is no resolved external IP to compare
    against (a sentinel such as "N/A" or the fetching marker).
    """

    if not is_valid_ipv4(external_ip):
        return ConnectionKind.UNKNOWN

    has_proxy = proxy_flags.any_enabled if isinstance(proxy_flags, ProxyFlags) else bool(proxy_flags)
    ip_differs = is_valid_ipv4(direct_ip) and direct_ip != external_ip

    if not ip_differs:
        return ConnectionKind.DIRECT
    return ConnectionKind.PROXY if has_proxy else ConnectionKind.VPN

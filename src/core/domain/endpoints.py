"""Static tables of IP-echo services.

Order is significant: resolvers walk each list front to back and stop at the
first parseable answer. The external and direct lists are never mixed because
they are fetched through different channels.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResponseFormat(str, Enum):
    """Expected shape of a service's response body."""

    PLAIN_IP = "plain_ip"
    CLOUDFLARE_TRACE = "cloudflare_trace"
    LABELED_LINE = "labeled_line"
    DNS_TXT = "dns_txt"


@dataclass(frozen=True)
class ServiceEndpoint:
    url_or_host: str
    response_format: ResponseFormat

    def __str__(self) -> str:
        return self.url_or_host


EXTERNAL_ENDPOINTS: tuple[ServiceEndpoint, ...] = (
    ServiceEndpoint("https://checkip.amazonaws.com", ResponseFormat.PLAIN_IP),
    ServiceEndpoint("https://icanhazip.com", ResponseFormat.PLAIN_IP),
    ServiceEndpoint("https://www.cloudflare.com/cdn-cgi/trace", ResponseFormat.CLOUDFLARE_TRACE),
)

# Fetched bypassing any system proxy.
DIRECT_ENDPOINTS: tuple[ServiceEndpoint, ...] = (
    # 3322.org, bare IP
    ServiceEndpoint("http://118.184.169.48/dyndns/getip", ResponseFormat.PLAIN_IP),
    # "当前 IP：x.x.x.x  来自于：..."
    ServiceEndpoint("http://myip.ipip.net", ResponseFormat.LABELED_LINE),
    # "IP\t: x.x.x.x"
    ServiceEndpoint("http://cip.cc", ResponseFormat.LABELED_LINE),
)

# OpenDNS answers `myip.opendns.com` with the caller's address. Queried against
# the resolver directly so the local DNS configuration is not involved.
DNS_FALLBACK_ENDPOINT = ServiceEndpoint("myip.opendns.com", ResponseFormat.DNS_TXT)
DNS_FALLBACK_RESOLVER = "208.67.222.222"

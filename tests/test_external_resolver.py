"""
Tests for the ordered external IP resolution.
"""

import httpx
import pytest
import respx

from conftest import FakeDnsLookup, FakeProxyProbe
from core.domain.endpoints import ResponseFormat, ServiceEndpoint
from core.domain.models import NOT_AVAILABLE, PROXY_ERROR, ProxyFlags
from core.errors import FetchError
from core.services.external_resolver import ExternalIPResolver

PRIMARY = "https://primary.example/ip"
SECONDARY = "https://secondary.example/ip"
TRACE = "https://trace.example/cdn-cgi/trace"

ENDPOINTS = (
    ServiceEndpoint(PRIMARY, ResponseFormat.PLAIN_IP),
    ServiceEndpoint(SECONDARY, ResponseFormat.PLAIN_IP),
    ServiceEndpoint(TRACE, ResponseFormat.CLOUDFLARE_TRACE),
)


def _resolver(settings, *, dns=None, proxy=None):
    return ExternalIPResolver(
        settings,
        endpoints=ENDPOINTS,
        dns_lookup=dns or FakeDnsLookup(None),
        proxy_probe=proxy or FakeProxyProbe(),
    )


@pytest.fixture
def router():
    with respx.mock(assert_all_called=False) as mocked:
        yield mocked


async def test_first_parseable_service_wins(settings, router):
    primary = router.get(PRIMARY).mock(return_value=httpx.Response(200, text="203.0.113.5\n"))
    secondary = router.get(SECONDARY).mock(return_value=httpx.Response(200, text="198.51.100.1\n"))

    assert await _resolver(settings).resolve() == "203.0.113.5"
    assert primary.called
    assert not secondary.called


async def test_transport_error_advances_to_next(settings, router):
    router.get(PRIMARY).mock(side_effect=httpx.ConnectError("refused"))
    router.get(SECONDARY).mock(return_value=httpx.Response(200, text="198.51.100.1"))
    trace = router.get(TRACE).mock(return_value=httpx.Response(200, text="ip=192.0.2.1\n"))

    assert await _resolver(settings).resolve() == "198.51.100.1"
    assert not trace.called


async def test_timeout_and_error_status_advance(settings, router):
    router.get(PRIMARY).mock(side_effect=httpx.ReadTimeout("slow"))
    router.get(SECONDARY).mock(return_value=httpx.Response(503, text="203.0.113.99"))
    router.get(TRACE).mock(return_value=httpx.Response(200, text="fl=1\nip=192.0.2.1\nts=1\n"))

    assert await _resolver(settings).resolve() == "192.0.2.1"


async def test_unparseable_body_advances(settings, router):
    router.get(PRIMARY).mock(return_value=httpx.Response(200, text="<html>busy</html>"))
    router.get(SECONDARY).mock(return_value=httpx.Response(200, text=""))
    router.get(TRACE).mock(return_value=httpx.Response(200, text="ip=192.0.2.1"))

    assert await _resolver(settings).resolve() == "192.0.2.1"


async def test_dns_fallback_after_all_http_services_fail(settings, router):
    for url in (PRIMARY, SECONDARY, TRACE):
        router.get(url).mock(side_effect=httpx.ConnectError("down"))
    dns = FakeDnsLookup("203.0.113.200")

    assert await _resolver(settings, dns=dns).resolve() == "203.0.113.200"
    assert dns.calls == 1


async def test_dns_not_queried_when_http_succeeds(settings, router):
    router.get(PRIMARY).mock(return_value=httpx.Response(200, text="203.0.113.5"))
    dns = FakeDnsLookup("203.0.113.200")

    await _resolver(settings, dns=dns).resolve()
    assert dns.calls == 0


async def test_total_failure_without_proxy_is_not_available(settings, router):
    for url in (PRIMARY, SECONDARY, TRACE):
        router.get(url).mock(side_effect=httpx.ConnectError("down"))

    result = await _resolver(settings, dns=FakeDnsLookup(FetchError("dns", "dig not found"))).resolve()
    assert result == NOT_AVAILABLE


async def test_total_failure_with_proxy_is_proxy_error(settings, router):
    for url in (PRIMARY, SECONDARY, TRACE):
        router.get(url).mock(side_effect=httpx.ProxyError("proxy refused"))
    proxy = FakeProxyProbe(ProxyFlags(http_enabled=True))

    assert await _resolver(settings, proxy=proxy).resolve() == PROXY_ERROR


async def test_same_environment_resolves_same_ip(settings, router):
    router.get(PRIMARY).mock(return_value=httpx.Response(200, text="203.0.113.5"))
    resolver = _resolver(settings)

    assert await resolver.resolve() == await resolver.resolve() == "203.0.113.5"


async def test_plain_service_answering_with_trace_body(settings, router):
    router.get(PRIMARY).mock(
        return_value=httpx.Response(200, text="fl=29f1\nh=1.1.1.1\nip=203.0.113.5\nts=1700000000.1\n")
    )

    assert await _resolver(settings).resolve() == "203.0.113.5"

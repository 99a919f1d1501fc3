"""Shared fixtures and fakes for the `core.interfaces` contracts."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import AppSettings
from core.domain.models import CachedIdentity, GeoInfo, HistoryRecord, LinkFlags, ProxyFlags
from core.errors import FetchError
from core.services.engine import IdentityEngine
from core.services.identity_store import IdentityStore
from core.services.reachability import ReachabilityMonitor


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        state_dir=tmp_path,
        http_timeout_seconds=1.0,
        direct_timeout_seconds=1.0,
        dns_timeout_seconds=1.0,
        probe_delay_seconds=0.01,
        probe_timeout_seconds=1.0,
        refresh_interval_seconds=3600.0,
        link_poll_interval_seconds=0.01,
    )


class FakeDirectFetcher:
    """Answers from a url -> body/exception map and records the call order."""

    def __init__(self, answers: dict[str, str | Exception]) -> None:
        self.answers = answers
        self.calls: list[str] = []

    async def fetch_bypassing_proxy(self, url: str, *, timeout: float) -> str:
        self.calls.append(url)
        answer = self.answers.get(url, FetchError(url, "unreachable"))
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeDnsLookup:
    def __init__(self, result: str | None | Exception = None) -> None:
        self.result = result
        self.calls = 0

    async def lookup(self) -> str | None:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeProxyProbe:
    def __init__(self, flags: ProxyFlags | None = None) -> None:
        self.flags = flags or ProxyFlags()

    def read_flags(self) -> ProxyFlags:
        return self.flags


class FakeLinkProbe:
    def __init__(self, flags: LinkFlags | None = None) -> None:
        self.flags = flags or LinkFlags()

    def read_flags(self) -> LinkFlags:
        return self.flags


class FakeConnectivityCheck:
    def __init__(self, result: bool | Exception = True) -> None:
        self.result = result
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeGeoLocator:
    def __init__(self, geo: GeoInfo | None = None) -> None:
        self.geo = geo
        self.calls: list[str] = []

    async def locate(self, ip: str) -> GeoInfo | None:
        self.calls.append(ip)
        return self.geo


class MemoryStateWriter:
    def __init__(self) -> None:
        self.identities: list[CachedIdentity] = []
        self.history: list[HistoryRecord] = []
        self.closed = False

    def save_identity(self, record: CachedIdentity) -> None:
        self.identities.append(record)

    def append_history(self, record: HistoryRecord) -> None:
        self.history.append(record)

    def close(self) -> None:
        self.closed = True


class ScriptedResolver:
    """Returns queued answers; an `asyncio.Event` in the queue holds the call."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    async def resolve(self) -> str:
        self.calls += 1
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, tuple):
            gate, ip = answer
            await gate.wait()
            return ip
        return answer


def make_engine(settings, *, external, direct=None, proxy=None, geo=None, link=None, writer=None):
    store = IdentityStore(writer=writer or MemoryStateWriter())
    monitor = ReachabilityMonitor(
        link or FakeLinkProbe(LinkFlags(reachable=True)),
        FakeConnectivityCheck(True),
        probe_delay=settings.probe_delay_seconds,
        poll_interval=settings.link_poll_interval_seconds,
    )
    return IdentityEngine(
        settings=settings,
        store=store,
        external_resolver=external,
        direct_resolver=direct or ScriptedResolver("N/A"),
        proxy_probe=proxy or FakeProxyProbe(),
        geolocator=geo or FakeGeoLocator(),
        monitor=monitor,
    )

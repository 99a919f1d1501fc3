"""Identity engine orchestration.

This module wires the resolvers, the classifier, the reachability monitor and
the snapshot store into the control flow the rest of the application relies
on:

    link change -> monitor emits AVAILABLE -> external resolution -> store
    -> (best-effort, in background) direct probe + classification, geolocation
       of the external IP and, when it differs, of the direct IP
    -> store -> subscribers

The same `refresh()` path serves startup, reachability events, the periodic
timer and manual refreshes. Overlapping refreshes are not cancelled; the store
drops completions older than the last committed one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from adapters.geolocation import IpWhoIsLocator
from adapters.http_client import HttpConnectivityCheck
from adapters.link_probe import default_link_probe
from adapters.shared_state import QueuedStateWriter, SharedStateFile
from adapters.system_proxy import default_proxy_probe
from core.config import AppSettings
from core.domain.models import IdentitySnapshot, ProxyFlags, ReachabilityEvent, ReachabilityState
from core.domain.parsing import is_valid_ipv4
from core.errors import FetchError
from core.interfaces.network import GeoLocator, ProxyFlagsProbe
from core.services.classifier import classify
from core.services.direct_resolver import DirectIPResolver
from core.services.external_resolver import ExternalIPResolver
from core.services.identity_store import IdentityStore
from core.services.reachability import ReachabilityMonitor

logger = logging.getLogger(__name__)


class IdentityEngine:
    def __init__(
        self,
        *,
        settings: AppSettings,
        store: IdentityStore,
        external_resolver: ExternalIPResolver,
        direct_resolver: DirectIPResolver,
        proxy_probe: ProxyFlagsProbe,
        geolocator: GeoLocator,
        monitor: ReachabilityMonitor,
    ) -> None:
        self._settings = settings
        self._store = store
        self._external = external_resolver
        self._direct = direct_resolver
        self._proxy_probe = proxy_probe
        self._geolocator = geolocator
        self._monitor = monitor

        self._tasks: set[asyncio.Task[Any]] = set()
        self._timer_task: asyncio.Task[None] | None = None
        self._unsubscribe_monitor = None

    @property
    def store(self) -> IdentityStore:
        return self._store

    @property
    def monitor(self) -> ReachabilityMonitor:
        return self._monitor

    async def refresh(self, *, reason: str = "manual") -> IdentitySnapshot:
        """Resolve the external IP and schedule the follow-ups.

        Returns the snapshot as it stands once the external IP is committed;
        direct IP, connection kind and geolocation land later.
        """

        generation = self._store.next_generation()
        logger.info("Refreshing identity (%s)", reason)
        self._store.mark_fetching()

        ip = await self._external.resolve()
        if self._store.commit_external(ip, generation=generation) and is_valid_ipv4(ip):
            self._spawn(self._enrich_location(ip), name="geolocation")
            self._spawn(self._detect_connection(ip, generation), name="connection-kind")
        return self._store.snapshot

    def request_refresh(self, *, reason: str) -> None:
        self._spawn(self.refresh(reason=reason), name=f"refresh:{reason}")

    async def settle(self) -> None:
        """Wait until every in-flight refresh and follow-up has finished."""

        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def start(self) -> None:
        self._unsubscribe_monitor = self._monitor.subscribe(self._on_reachability)
        await self._monitor.start()

        if not await asyncio.to_thread(self._monitor.get_current_status):
            logger.info("Network not available at startup, waiting for network...")

        self.request_refresh(reason="startup")
        self._timer_task = asyncio.create_task(self._refresh_timer())

    async def stop(self) -> None:
        """Stop the timer and the monitor, let in-flight attempts finish, flush the store."""

        if self._timer_task is not None:
            self._timer_task.cancel()
            await asyncio.gather(self._timer_task, return_exceptions=True)
            self._timer_task = None
        if self._unsubscribe_monitor is not None:
            self._unsubscribe_monitor()
            self._unsubscribe_monitor = None
        await self._monitor.stop()
        await self.settle()
        await asyncio.to_thread(self._store.close)

    async def _refresh_timer(self) -> None:
        while True:
            await asyncio.sleep(self._settings.refresh_interval_seconds)
            self.request_refresh(reason="timer")

    def _on_reachability(self, event: ReachabilityEvent) -> None:
        if event.state is ReachabilityState.AVAILABLE:
            if not event.confirmed:
                self._store.reset_connection()
            reason = "network confirmed" if event.confirmed else "network available"
            self.request_refresh(reason=reason)
        elif event.state is ReachabilityState.UNAVAILABLE:
            logger.info("Network became unavailable")
            self._store.reset_connection()

    async def _detect_connection(self, external_ip: str, generation: int) -> None:
        direct_ip = await self._direct.resolve()
        flags = await self._read_proxy_flags()
        kind = classify(external_ip, direct_ip, flags)
        logger.info("Connection kind: %s (direct IP %s)", kind.value, direct_ip)
        if not self._store.commit_connection(direct_ip, kind, generation=generation):
            return
        if self._settings.show_location and is_valid_ipv4(direct_ip) and direct_ip != external_ip:
            self._store.set_direct_geo(direct_ip, await self._geolocator.locate(direct_ip))

    async def _enrich_location(self, ip: str) -> None:
        if not self._settings.show_location:
            return
        geo = await self._geolocator.locate(ip)
        self._store.set_geo(ip, geo)

    async def _read_proxy_flags(self) -> ProxyFlags:
        try:
            return await asyncio.to_thread(self._proxy_probe.read_flags)
        except (FetchError, OSError) as exc:
            logger.debug("Could not read system proxy flags: %s", exc)
            return ProxyFlags()

    def _spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=exc)


def build_engine(settings: AppSettings | None = None, *, store: IdentityStore | None = None) -> IdentityEngine:
    """Wire the engine with the default platform adapters."""

    settings = settings or AppSettings()
    store = store or IdentityStore(writer=QueuedStateWriter(SharedStateFile.from_settings(settings)))
    proxy_probe = default_proxy_probe(settings)
    monitor = ReachabilityMonitor(
        default_link_probe(settings),
        HttpConnectivityCheck(settings),
        probe_delay=settings.probe_delay_seconds,
        poll_interval=settings.link_poll_interval_seconds,
    )
    return IdentityEngine(
        settings=settings,
        store=store,
        external_resolver=ExternalIPResolver(settings, proxy_probe=proxy_probe),
        direct_resolver=DirectIPResolver(settings),
        proxy_probe=proxy_probe,
        geolocator=IpWhoIsLocator(settings),
        monitor=monitor,
    )

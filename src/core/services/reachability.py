"""Link reachability monitor.

A change of the low-level link flags is the only external trigger. Link-up
does not imply internet-up (captive portal, DHCP still settling), so a
reachable link is signalled twice:

1. immediately, an optimistic `AVAILABLE` event;
2. after `probe_delay`, a confirmed `AVAILABLE` event if a lightweight HTTP
   probe succeeds. A failed probe emits nothing and retracts nothing.

An unreachable link emits `UNAVAILABLE` at once, with no probe.

Flag changes come from `handle_flags()`; `start()` runs a watcher task that
samples a `LinkFlagsProbe` and feeds changes into it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from core.domain.models import LinkFlags, ReachabilityEvent, ReachabilityState
from core.errors import FetchError
from core.interfaces.network import ConnectivityCheck, LinkFlagsProbe

logger = logging.getLogger(__name__)

ReachabilityListener = Callable[[ReachabilityEvent], None]


class ReachabilityMonitor:
    def __init__(
        self,
        link_probe: LinkFlagsProbe,
        connectivity_check: ConnectivityCheck,
        *,
        probe_delay: float = 1.0,
        poll_interval: float = 2.0,
    ) -> None:
        self._link_probe = link_probe
        self._connectivity_check = connectivity_check
        self._probe_delay = probe_delay
        self._poll_interval = poll_interval

        self._state = ReachabilityState.UNKNOWN
        self._listeners: list[ReachabilityListener] = []
        self._probe_tasks: set[asyncio.Task[None]] = set()
        self._watch_task: asyncio.Task[None] | None = None
        self._last_flags: LinkFlags | None = None

    @property
    def state(self) -> ReachabilityState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def subscribe(self, listener: ReachabilityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_current_status(self) -> bool:
        """One-shot synchronous check of the current link flags."""

        return self._read_flags().is_reachable

    def handle_flags(self, flags: LinkFlags) -> None:
        """React to a link flag change. Must be called on the event loop."""

        logger.info(
            "Network change detected - available: %s (reachable=%s, connection_required=%s)",
            flags.is_reachable,
            flags.reachable,
            flags.connection_required,
        )
        if flags.is_reachable:
            self._state = ReachabilityState.AVAILABLE
            self._emit(ReachabilityEvent(state=ReachabilityState.AVAILABLE))
            task = asyncio.get_running_loop().create_task(self._confirm_connectivity())
            self._probe_tasks.add(task)
            task.add_done_callback(self._probe_tasks.discard)
        else:
            self._state = ReachabilityState.UNAVAILABLE
            self._emit(ReachabilityEvent(state=ReachabilityState.UNAVAILABLE))

    async def start(self) -> None:
        if self.is_monitoring:
            return
        self._last_flags = await asyncio.to_thread(self._read_flags)
        self._watch_task = asyncio.create_task(self._watch())
        logger.info("Started monitoring network changes")

    async def stop(self) -> None:
        tasks = [t for t in (self._watch_task, *self._probe_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._watch_task = None
        self._probe_tasks.clear()
        if tasks:
            logger.info("Stopped monitoring network changes")

    async def _watch(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            flags = await asyncio.to_thread(self._read_flags)
            if flags != self._last_flags:
                self._last_flags = flags
                self.handle_flags(flags)

    async def _confirm_connectivity(self) -> None:
        await asyncio.sleep(self._probe_delay)
        try:
            connected = await self._connectivity_check()
        except (FetchError, OSError, asyncio.TimeoutError) as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            connected = False

        if connected:
            logger.info("Internet connectivity confirmed")
            self._emit(ReachabilityEvent(state=ReachabilityState.AVAILABLE, confirmed=True))
        else:
            logger.info("Network reachable but no internet access")

    def _read_flags(self) -> LinkFlags:
        try:
            return self._link_probe.read_flags()
        except OSError as exc:
            logger.debug("Could not read link flags: %s", exc)
            return LinkFlags()

    def _emit(self, event: ReachabilityEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Reachability listener failed")

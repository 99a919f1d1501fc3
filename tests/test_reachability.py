"""
Tests for the two-phase reachability signal.
"""

import asyncio

from conftest import FakeConnectivityCheck, FakeLinkProbe
from core.domain.models import LinkFlags, ReachabilityEvent, ReachabilityState
from core.services.reachability import ReachabilityMonitor

UP = LinkFlags(reachable=True)
DOWN = LinkFlags()


def _monitor(link=None, check=None):
    monitor = ReachabilityMonitor(
        link or FakeLinkProbe(),
        check or FakeConnectivityCheck(True),
        probe_delay=0.01,
        poll_interval=0.01,
    )
    events: list[ReachabilityEvent] = []
    monitor.subscribe(events.append)
    return monitor, events


async def _drain(monitor: ReachabilityMonitor) -> None:
    await asyncio.sleep(0.05)
    await monitor.stop()


async def test_reachable_emits_optimistic_then_confirmed():
    monitor, events = _monitor()

    monitor.handle_flags(UP)
    assert [(e.state, e.confirmed) for e in events] == [(ReachabilityState.AVAILABLE, False)]

    await _drain(monitor)
    assert [(e.state, e.confirmed) for e in events] == [
        (ReachabilityState.AVAILABLE, False),
        (ReachabilityState.AVAILABLE, True),
    ]
    assert monitor.state is ReachabilityState.AVAILABLE


async def test_failed_probe_emits_only_optimistic_event():
    check = FakeConnectivityCheck(False)
    monitor, events = _monitor(check=check)

    monitor.handle_flags(UP)
    await _drain(monitor)

    assert len(events) == 1
    assert not events[0].confirmed
    assert check.calls == 1


async def test_probe_exception_counts_as_failure():
    monitor, events = _monitor(check=FakeConnectivityCheck(OSError("no route")))

    monitor.handle_flags(UP)
    await _drain(monitor)

    assert len(events) == 1


async def test_unreachable_emits_immediately_without_probe():
    check = FakeConnectivityCheck(True)
    monitor, events = _monitor(check=check)

    monitor.handle_flags(DOWN)
    await _drain(monitor)

    assert [e.state for e in events] == [ReachabilityState.UNAVAILABLE]
    assert check.calls == 0
    assert monitor.state is ReachabilityState.UNAVAILABLE


async def test_connection_required_is_unavailable():
    monitor, events = _monitor()

    monitor.handle_flags(LinkFlags(reachable=True, connection_required=True))

    assert [e.state for e in events] == [ReachabilityState.UNAVAILABLE]


async def test_watcher_reports_flag_changes():
    link = FakeLinkProbe(DOWN)
    monitor, events = _monitor(link=link)

    await monitor.start()
    assert monitor.is_monitoring
    await asyncio.sleep(0.05)
    assert events == []

    link.flags = UP
    await asyncio.sleep(0.1)
    await monitor.stop()

    assert not monitor.is_monitoring
    assert [(e.state, e.confirmed) for e in events] == [
        (ReachabilityState.AVAILABLE, False),
        (ReachabilityState.AVAILABLE, True),
    ]


async def test_current_status_reads_link_once():
    monitor, _ = _monitor(link=FakeLinkProbe(UP))
    assert monitor.get_current_status() is True

    monitor, _ = _monitor(link=FakeLinkProbe(LinkFlags(reachable=True, connection_required=True)))
    assert monitor.get_current_status() is False


async def test_unreadable_link_counts_as_down():
    class BrokenProbe:
        def read_flags(self):
            raise OSError("scutil missing")

    monitor, _ = _monitor(link=BrokenProbe())
    assert monitor.get_current_status() is False


async def test_stop_cancels_pending_probe():
    check = FakeConnectivityCheck(True)
    monitor = ReachabilityMonitor(FakeLinkProbe(), check, probe_delay=10.0)
    events: list[ReachabilityEvent] = []
    monitor.subscribe(events.append)

    monitor.handle_flags(UP)
    await monitor.stop()

    assert len(events) == 1
    assert check.calls == 0


async def test_unsubscribed_listener_is_not_called():
    monitor, events = _monitor()
    other: list[ReachabilityEvent] = []
    unsubscribe = monitor.subscribe(other.append)
    unsubscribe()

    monitor.handle_flags(DOWN)

    assert len(events) == 1
    assert other == []

"""Identity snapshot store.

The store is the only shared mutable state of the engine. It is owned by the
top-level process and handed to whoever needs it; every mutation goes through
its methods on the event loop (single writer), gets persisted for
cross-process readers and is published to subscribers.

Stale completions are discarded with a monotonic generation counter: each
resolution takes a number from `next_generation()` and a commit carrying a
number older than the last committed one is ignored.
"""

from __future__ import annotations

import logging
from typing import Callable

from core.domain.models import (
    FETCHING,
    NOT_AVAILABLE,
    CachedIdentity,
    ConnectionKind,
    GeoInfo,
    HistoryRecord,
    IdentitySnapshot,
    is_sentinel,
    utcnow,
)
from core.interfaces.persistence import SharedStateWriter

logger = logging.getLogger(__name__)

Listener = Callable[[IdentitySnapshot], None]


class IdentityStore:
    def __init__(self, *, writer: SharedStateWriter | None = None) -> None:
        self._snapshot = IdentitySnapshot()
        self._history: list[HistoryRecord] = []
        self._last_resolved_ip = NOT_AVAILABLE
        self._geo: GeoInfo | None = None
        self._geo_ip: str | None = None
        self._direct_geo: GeoInfo | None = None
        self._direct_geo_ip: str | None = None
        self._issued_generation = 0
        self._committed_generation = 0
        self._listeners: list[Listener] = []
        self._writer = writer

    @property
    def snapshot(self) -> IdentitySnapshot:
        """Read-only copy of the current snapshot."""

        return self._snapshot.model_copy()

    @property
    def history(self) -> tuple[HistoryRecord, ...]:
        return tuple(self._history)

    @property
    def geo(self) -> GeoInfo | None:
        if self._geo_ip and self._geo_ip == self._snapshot.external_ip:
            return self._geo
        return None

    @property
    def direct_geo(self) -> GeoInfo | None:
        if self._direct_geo_ip and self._direct_geo_ip == self._snapshot.direct_ip:
            return self._direct_geo
        return None

    def next_generation(self) -> int:
        self._issued_generation += 1
        return self._issued_generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Mutations

    def mark_fetching(self) -> None:
        self._snapshot.external_ip = FETCHING
        self._publish(persist=False)

    def commit_external(self, ip: str, *, generation: int) -> bool:
        """Apply the outcome of an external resolution (IP or sentinel).

        `prior_ip`, `has_changed` and the history only move when a valid IP
        differs from the last resolved one. Such a change also clears the
        direct IP and the connection kind until they are classified again.
        """

        if self._is_stale(generation):
            logger.debug("Discarding stale external result %s (generation %d)", ip, generation)
            return False
        self._committed_generation = generation

        snap = self._snapshot
        if is_sentinel(ip):
            snap.external_ip = ip
            snap.connection_kind = ConnectionKind.UNKNOWN
        else:
            if ip != self._last_resolved_ip:
                record = HistoryRecord(new_ip=ip, prior_ip=self._last_resolved_ip)
                self._history.append(record)
                self._append_history(record)
                snap.prior_ip = self._last_resolved_ip
                snap.has_changed = True
                # the previous classification belongs to another IP
                snap.direct_ip = NOT_AVAILABLE
                snap.connection_kind = ConnectionKind.UNKNOWN
                logger.info("External IP changed: %s", record)
            self._last_resolved_ip = ip
            snap.external_ip = ip
        snap.last_updated = utcnow()
        self._publish()
        return True

    def commit_connection(self, direct_ip: str, kind: ConnectionKind, *, generation: int) -> bool:
        if self._is_stale(generation):
            logger.debug("Discarding stale direct result %s (generation %d)", direct_ip, generation)
            return False
        self._snapshot.direct_ip = direct_ip
        self._snapshot.connection_kind = kind
        self._snapshot.last_updated = utcnow()
        self._publish()
        return True

    def set_geo(self, ip: str, geo: GeoInfo | None) -> None:
        if ip != self._snapshot.external_ip:
            return
        self._geo_ip = ip
        self._geo = geo
        self._publish()

    def set_direct_geo(self, ip: str, geo: GeoInfo | None) -> None:
        """Location of the direct IP. Display only, not part of the shared record."""

        if ip != self._snapshot.direct_ip:
            return
        self._direct_geo_ip = ip
        self._direct_geo = geo
        self._publish(persist=False)

    def reset_connection(self) -> None:
        """Forget direct IP and kind after a link transition."""

        self._snapshot.direct_ip = NOT_AVAILABLE
        self._snapshot.connection_kind = ConnectionKind.UNKNOWN
        self._publish()

    def clear_changed(self) -> bool:
        """Acknowledge an IP change. Returns whether the flag was set."""

        was_set = self._snapshot.has_changed
        if was_set:
            self._snapshot.has_changed = False
            self._publish(persist=False)
        return was_set

    def close(self) -> None:
        """Wait for pending writes; the writer may persist in the background."""

        if self._writer is not None:
            self._writer.close()

    # Internals

    def _is_stale(self, generation: int) -> bool:
        return generation < self._committed_generation

    def cached_identity(self) -> CachedIdentity:
        snap = self._snapshot
        geo = self.geo or GeoInfo()
        return CachedIdentity(
            ip=snap.external_ip,
            country=geo.country,
            country_code=geo.country_code,
            city=geo.city,
            last_update=snap.last_updated,
            is_proxy=snap.connection_kind is ConnectionKind.PROXY,
            connection_type=snap.connection_kind,
        )

    def _append_history(self, record: HistoryRecord) -> None:
        if self._writer is None:
            return
        try:
            self._writer.append_history(record)
        except OSError as exc:
            logger.warning("Could not append history record: %s", exc)

    def _publish(self, *, persist: bool = True) -> None:
        if persist and self._writer is not None and self._snapshot.external_ip != FETCHING:
            try:
                self._writer.save_identity(self.cached_identity())
            except OSError as exc:
                logger.warning("Could not persist shared state: %s", exc)

        current = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(current)
            except Exception:
                logger.exception("Snapshot listener failed")

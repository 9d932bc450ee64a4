"""Keeps node conditions in sync with the API server through a problem client."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Protocol

from npdetect.problem import Condition
from npdetect.problemclient import to_node_condition

__all__ = ["RealClock", "FakeClock", "ConditionManager"]

log = logging.getLogger(__name__)

UPDATE_PERIOD = timedelta(seconds=1)
RESYNC_PERIOD = timedelta(seconds=10)


class _Clock(Protocol):
    def now(self) -> datetime: ...


class RealClock:
    """A clock that reads the system time."""

    def now(self) -> datetime:
        """Return the current local time."""
        return datetime.now()


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, time: datetime) -> None:
        self._time = time
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Return the clock's current time."""
        with self._lock:
            return self._time

    def step(self, delta: timedelta) -> None:
        """Move the clock forward by ``delta``."""
        with self._lock:
            self._time += delta


class ConditionManager:
    """Synchronises node conditions with the API server.

    Updates are pushed as soon as they are seen on the next tick, the server
    is not flooded, failed syncs are retried after a resync period, and a full
    sync is forced every heartbeat period.
    """

    def __init__(
        self,
        client: Any,
        clock: _Clock,
        heartbeat_period: timedelta,
        *,
        update_period: timedelta = UPDATE_PERIOD,
    ) -> None:
        self._client = client
        self._clock = clock
        self._heartbeat_period = heartbeat_period
        self._update_period = update_period
        self._lock = threading.Lock()
        self._updates: dict[str, Condition] = {}
        self._conditions: dict[str, Condition] = {}
        self._latest_try: datetime | None = None
        self._resync_needed = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def conditions(self) -> dict[str, Condition]:
        """The conditions last accepted for syncing, by type."""
        with self._lock:
            return dict(self._conditions)

    @conditions.setter
    def conditions(self, value: dict[str, Condition]) -> None:
        with self._lock:
            self._conditions = dict(value)

    def start(self) -> None:
        """Start the background sync loop."""
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._sync_loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background sync loop and wait for it to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def update_condition(self, condition: Condition) -> None:
        """Queue a condition; a newer one of the same type replaces it."""
        with self._lock:
            self._updates[condition.type] = condition

    def get_conditions(self) -> list[Condition]:
        """Return copies of all current conditions."""
        with self._lock:
            return [replace(c) for c in self._conditions.values()]

    def need_updates(self) -> bool:
        """Move queued updates into the conditions; True if any changed."""
        with self._lock:
            changed = False
            for condition_type, update in self._updates.items():
                if self._conditions.get(condition_type) != update:
                    changed = True
                    self._conditions[condition_type] = update
            self._updates.clear()
            return changed

    def _since_latest_try(self) -> timedelta | None:
        if self._latest_try is None:
            return None
        return self._clock.now() - self._latest_try

    def need_resync(self) -> bool:
        """True if the last sync failed and the resync period has passed."""
        elapsed = self._since_latest_try()
        return self._resync_needed and (elapsed is None or elapsed >= RESYNC_PERIOD)

    def need_heartbeat(self) -> bool:
        """True if the heartbeat period has passed since the last sync."""
        elapsed = self._since_latest_try()
        return elapsed is None or elapsed >= self._heartbeat_period

    def sync(self) -> None:
        """Send all conditions to the client, marking a resync on failure."""
        self._latest_try = self._clock.now()
        self._resync_needed = False
        with self._lock:
            snapshot = list(self._conditions.values())
        node_conditions = [to_node_condition(c) for c in snapshot]
        try:
            self._client.set_conditions(node_conditions)
        except Exception as exc:  # noqa: BLE001 - retried on a later sync
            log.error("failed to update node conditions: %s", exc)
            self._resync_needed = True

    def _sync_loop(self) -> None:
        while not self._stop.wait(self._update_period.total_seconds()):
            if self.need_updates() or self.need_resync() or self.need_heartbeat():
                self.sync()
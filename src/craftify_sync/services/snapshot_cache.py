"""Read-optimized holder for the published snapshot and sync state."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from craftify_sync.domain.recipes import Snapshot
from craftify_sync.domain.sync import SyncState

Subscriber = Callable[[Snapshot, SyncState], None]

_logger = logging.getLogger(__name__)


@dataclass
class SnapshotCache:
    """Holds the current snapshot; readers see either the old or new value."""

    _snapshot: Snapshot = field(default_factory=Snapshot)
    _state: SyncState = field(default_factory=SyncState)
    _subscribers: list[Subscriber] = field(default_factory=list)
    _ready: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def sync_state(self) -> SyncState:
        return self._state

    @property
    def is_ready(self) -> bool:
        """Return True once a snapshot has been published."""
        return self._ready.is_set()

    def publish(self, snapshot: Snapshot) -> None:
        """Swap in a new snapshot and notify subscribers."""
        self._snapshot = snapshot
        self._ready.set()
        self._notify()

    def set_state(self, state: SyncState) -> None:
        """Swap in a new sync state and notify subscribers."""
        self._state = state
        self._notify()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change callback and return a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def wait_ready(self) -> Snapshot:
        """Wait until the first snapshot is published and return the current one."""
        await self._ready.wait()
        return self._snapshot

    def _notify(self) -> None:
        snapshot, state = self._snapshot, self._state
        for callback in list(self._subscribers):
            try:
                callback(snapshot, state)
            except Exception:
                _logger.exception("Snapshot subscriber failed")

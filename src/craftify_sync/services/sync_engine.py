"""Sync engine reconciling the local catalog with the remote services.

The engine is the single writer of the published snapshot and of the
favorite set. Every mutation runs inside ``_write_lock`` without awaiting,
so readers of :class:`SnapshotCache` only ever see whole snapshots.

Favorite toggles are local-first: the new set is persisted and published
before the remote push is even scheduled. Toggles that have not been
confirmed by the remote store are tracked as pending changes and win over
the remote copy when a refresh merges the two.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from craftify_sync.domain.errors import (
    NetworkError,
    RecipeNotFoundError,
    RemoteError,
    StorageError,
    SyncError,
)
from craftify_sync.domain.recipes import MAX_RECENT_SEARCHES, Recipe, Snapshot
from craftify_sync.domain.sync import SyncState, SyncStatus
from craftify_sync.services.gateway import RemoteGateway
from craftify_sync.services.local_store import LocalStore
from craftify_sync.services.snapshot_cache import SnapshotCache

_logger = logging.getLogger(__name__)

_RefreshResult = tuple[Snapshot, SyncError | None]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def merge_favorites(
    remote_ids: Iterable[int],
    pending_changes: Mapping[int, bool],
    catalog_ids: Iterable[int],
) -> frozenset[int]:
    """Merge remote favorites with unpushed local toggles, pruned to the catalog."""
    merged = set(remote_ids)
    for recipe_id, is_favorite in pending_changes.items():
        if is_favorite:
            merged.add(recipe_id)
        else:
            merged.discard(recipe_id)
    return frozenset(merged.intersection(catalog_ids))


@dataclass
class SyncEngine:
    """Owns the published snapshot and coordinates local and remote state."""

    local_store: LocalStore
    gateway: RemoteGateway
    cache: SnapshotCache = field(default_factory=SnapshotCache)
    refresh_cooldown_seconds: float = 30.0
    clock: Callable[[], datetime] = _utc_now
    last_push_error: SyncError | None = field(default=None, init=False)
    _pending: dict[int, bool] = field(default_factory=dict, init=False)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _refresh_task: "asyncio.Task[_RefreshResult] | None" = field(
        default=None, init=False
    )
    _push_locks: dict[int, asyncio.Lock] = field(default_factory=dict, init=False)
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False)

    def current_snapshot(self) -> Snapshot:
        """Return the published snapshot without blocking."""
        return self.cache.snapshot

    def current_sync_state(self) -> SyncState:
        """Return the current sync state without blocking."""
        return self.cache.sync_state

    @property
    def pending_changes(self) -> dict[int, bool]:
        """Return favorite toggles not yet confirmed by the remote store."""
        return dict(self._pending)

    def is_favorite(self, recipe_id: int) -> bool:
        """Return True if the recipe is a favorite in the current snapshot."""
        return recipe_id in self.cache.snapshot.favorites

    async def start(self) -> Snapshot:
        """Publish the local catalog if present, then reconcile with remote."""
        try:
            stored = self.local_store.load()
        except StorageError:
            _logger.exception("Local catalog is unreadable; waiting for remote sync")
            stored = None

        if stored is None:
            _logger.info("No local catalog found; waiting for the first sync")
            try:
                snapshot, _ = await self._join_refresh()
            except StorageError:
                _logger.exception("Initial sync could not be persisted")
                return self.cache.snapshot
            return snapshot

        with self._write_lock:
            self._pending = dict(stored.pending_changes)
            self.cache.publish(
                Snapshot.build(stored.recipes, stored.favorites, stored.recent_searches)
            )
        _logger.info("Loaded local catalog: recipes=%s", len(stored.recipes))
        self._spawn(self._background_refresh())
        return self.cache.snapshot

    async def close(self) -> None:
        """Wait for the in-flight refresh and outstanding pushes to finish."""
        while True:
            outstanding = {task for task in self._tasks if not task.done()}
            if self._refresh_task is not None and not self._refresh_task.done():
                outstanding.add(self._refresh_task)
            if not outstanding:
                return
            await asyncio.wait(outstanding)

    async def refresh(self) -> Snapshot:
        """Sync the catalog and favorites, joining any refresh in flight.

        Network and remote failures leave the previous snapshot published
        and move the sync state to FAILED. Storage failures are raised.
        """
        snapshot, _ = await self._join_refresh()
        return snapshot

    async def refresh_if_stale(self) -> Snapshot:
        """Refresh unless the last successful sync is within the cooldown."""
        last_synced_at = self.cache.sync_state.last_synced_at
        if last_synced_at is not None and self.cache.is_ready:
            age = (self.clock() - last_synced_at).total_seconds()
            if age < self.refresh_cooldown_seconds:
                _logger.info("Skipping refresh; last sync was %.0fs ago", age)
                return self.cache.snapshot
        return await self.refresh()

    def toggle_favorite(self, recipe_id: int) -> bool:
        """Flip a favorite locally, publish it, then push it in the background."""
        with self._write_lock:
            snapshot = self.cache.snapshot
            if snapshot.get(recipe_id) is None:
                raise RecipeNotFoundError(recipe_id)
            is_favorite = recipe_id not in snapshot.favorites
            if is_favorite:
                favorites = snapshot.favorites | {recipe_id}
            else:
                favorites = snapshot.favorites - {recipe_id}
            pending = {**self._pending, recipe_id: is_favorite}
            self.local_store.update_favorites(favorites, pending)
            self._pending = pending
            self.cache.publish(replace(snapshot, favorites=favorites))
        _logger.info("Toggled favorite %s -> %s", recipe_id, is_favorite)
        self._schedule_push(recipe_id)
        return is_favorite

    async def clear_cache(self) -> bool:
        """Wipe the local store and repopulate it from the remote catalog."""
        await self._settle_refresh()
        try:
            self.local_store.clear()
        except StorageError:
            _logger.exception("Failed to clear local cache")
            return False
        try:
            _, error = await self._join_refresh()
        except StorageError:
            self._restore_local_state()
            return False
        if error is not None:
            _logger.warning("Cache cleared but repopulation failed: %s", error)
            self._restore_local_state()
            return False
        return True

    async def clear_all_data(self) -> bool:
        """Clear the cache, all favorites and the recent searches."""
        cache_cleared = await self.clear_cache()
        with self._write_lock:
            snapshot = self.cache.snapshot
            removed = snapshot.favorites
            pending = {**self._pending, **{recipe_id: False for recipe_id in removed}}
            cleared = replace(snapshot, favorites=frozenset(), recent_searches=())
            try:
                self.local_store.save(cleared.recipes, cleared.favorites, pending, ())
            except StorageError:
                _logger.exception("Failed to persist cleared favorites")
                return False
            self._pending = pending
            self.cache.publish(cleared)
        for recipe_id in removed:
            self._schedule_push(recipe_id)
        return cache_cleared

    def record_recent_search(self, recipe_id: int) -> tuple[str, ...]:
        """Move a recipe name to the front of the recent search list."""
        with self._write_lock:
            snapshot = self.cache.snapshot
            recipe = snapshot.get(recipe_id)
            if recipe is None:
                raise RecipeNotFoundError(recipe_id)
            names = (
                recipe.name,
                *(name for name in snapshot.recent_searches if name != recipe.name),
            )[:MAX_RECENT_SEARCHES]
            self.local_store.update_recent_searches(names)
            self.cache.publish(replace(snapshot, recent_searches=names))
        return names

    def clear_recent_searches(self) -> None:
        """Forget every recent search."""
        with self._write_lock:
            self.local_store.update_recent_searches(())
            self.cache.publish(replace(self.cache.snapshot, recent_searches=()))

    def _restore_local_state(self) -> None:
        """Write the published snapshot back after a failed repopulation."""
        with self._write_lock:
            snapshot = self.cache.snapshot
            if not snapshot.recipes:
                return
            try:
                self.local_store.save(
                    snapshot.recipes,
                    snapshot.favorites,
                    self._pending,
                    snapshot.recent_searches,
                )
            except StorageError:
                _logger.exception("Failed to restore the local catalog")

    async def _join_refresh(self) -> _RefreshResult:
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._run_refresh())
            self._refresh_task = task
        return await asyncio.shield(task)

    async def _settle_refresh(self) -> None:
        task = self._refresh_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _run_refresh(self) -> _RefreshResult:
        self.cache.set_state(self.cache.sync_state.syncing())
        try:
            recipes, remote_ids = await asyncio.gather(
                self.gateway.fetch_catalog(),
                self.gateway.fetch_favorite_ids(),
            )
        except (NetworkError, RemoteError) as exc:
            _logger.warning("Refresh failed, keeping previous snapshot: %s", exc)
            self.cache.set_state(self.cache.sync_state.failed(exc))
            return self.cache.snapshot, exc
        except Exception as exc:
            _logger.exception("Refresh failed unexpectedly")
            error = RemoteError(f"refresh failed: {exc}")
            self.cache.set_state(self.cache.sync_state.failed(error))
            return self.cache.snapshot, error

        try:
            snapshot = self._commit_refresh(recipes, remote_ids)
        except StorageError as exc:
            _logger.error("Refresh could not be persisted: %s", exc)
            self.cache.set_state(self.cache.sync_state.failed(exc))
            raise
        self.cache.set_state(SyncState(SyncStatus.IDLE, None, self.clock()))
        for recipe_id in list(self._pending):
            self._schedule_push(recipe_id)
        return snapshot, None

    def _commit_refresh(self, recipes: list[Recipe], remote_ids: set[int]) -> Snapshot:
        with self._write_lock:
            catalog_ids = {recipe.id for recipe in recipes}
            pending = {
                recipe_id: is_favorite
                for recipe_id, is_favorite in self._pending.items()
                if recipe_id in catalog_ids
            }
            snapshot = Snapshot.build(
                recipes,
                merge_favorites(remote_ids, pending, catalog_ids),
                self.cache.snapshot.recent_searches,
            )
            self.local_store.save(
                snapshot.recipes, snapshot.favorites, pending, snapshot.recent_searches
            )
            self._pending = pending
            self.cache.publish(snapshot)
        _logger.info(
            "Refresh complete: recipes=%s favorites=%s pending=%s",
            len(snapshot.recipes),
            len(snapshot.favorites),
            len(pending),
        )
        return snapshot

    async def _background_refresh(self) -> None:
        try:
            await self.refresh()
        except StorageError:
            _logger.exception("Background refresh could not be persisted")

    def _schedule_push(self, recipe_id: int) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            _logger.info("No running loop; favorite %s stays pending", recipe_id)
            return
        self._spawn(self._push(recipe_id))

    def _spawn(self, coro: Coroutine[object, object, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _push(self, recipe_id: int) -> None:
        """Push the latest pending state of one recipe to the remote store."""
        lock = self._push_locks.setdefault(recipe_id, asyncio.Lock())
        async with lock:
            is_favorite = self._pending.get(recipe_id)
            if is_favorite is None:
                return
            try:
                await self.gateway.push_favorite_change(recipe_id, is_favorite)
            except SyncError as exc:
                self.last_push_error = exc
                _logger.warning("Favorite %s stays pending: %s", recipe_id, exc)
                return
            # A refresh in flight may have read remote favorites before this
            # push landed; keep the entry so that refresh still applies it.
            if self._refresh_task is not None and not self._refresh_task.done():
                return
            self._confirm_push(recipe_id, is_favorite)

    def _confirm_push(self, recipe_id: int, is_favorite: bool) -> None:
        with self._write_lock:
            if self._pending.get(recipe_id) is not is_favorite:
                return
            pending = dict(self._pending)
            del pending[recipe_id]
            try:
                self.local_store.update_favorites(
                    self.cache.snapshot.favorites, pending
                )
            except StorageError:
                _logger.exception("Failed to persist confirmed favorite %s", recipe_id)
                return
            self._pending = pending

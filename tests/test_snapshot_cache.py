"""Tests for snapshots, sync state and the snapshot cache."""

import asyncio
from datetime import UTC, datetime

import pytest

from craftify_sync.domain.errors import NetworkError
from craftify_sync.domain.recipes import Recipe, Snapshot
from craftify_sync.domain.sync import SyncState, SyncStatus
from craftify_sync.services.snapshot_cache import SnapshotCache


def _recipe(recipe_id: int, name: str, category: str) -> Recipe:
    return Recipe(
        id=recipe_id, name=name, image="", ingredients=(), output=1, category=category
    )


def test_snapshot_build_sorts_and_prunes() -> None:
    snapshot = Snapshot.build(
        [
            _recipe(2, "Torch", "Tools"),
            _recipe(1, "Chest", "Storage"),
            _recipe(3, "Stick", ""),
        ],
        favorites={1, 9},
        recent_searches=["Torch", "Missing", "Chest"],
    )

    assert [recipe.id for recipe in snapshot.recipes] == [1, 3, 2]
    assert snapshot.categories == frozenset({"Tools", "Storage"})
    assert snapshot.sorted_categories() == ["Storage", "Tools"]
    assert snapshot.favorites == frozenset({1})
    assert snapshot.recent_searches == ("Torch", "Chest")
    assert [recipe.name for recipe in snapshot.favorite_recipes()] == ["Chest"]
    assert snapshot.get(9) is None


def test_snapshot_filter_by_category_and_search() -> None:
    snapshot = Snapshot.build(
        [
            _recipe(1, "Chest", "Storage"),
            _recipe(2, "Ender Chest", "Storage"),
            _recipe(3, "Torch", "Tools"),
        ],
        favorites=(),
    )

    assert [r.id for r in snapshot.filter(category="Storage")] == [1, 2]
    assert [r.id for r in snapshot.filter(search="CHEST")] == [1, 2]
    assert [r.id for r in snapshot.filter(category="Tools", search="chest")] == []
    assert len(snapshot.filter()) == 3


def test_recipe_rejects_invalid_values() -> None:
    with pytest.raises(ValueError):
        Recipe(id=1, name="Big", image="", ingredients=("x",) * 10, output=1)
    with pytest.raises(ValueError):
        Recipe(id=1, name="None", image="", ingredients=(), output=0)


def test_sync_state_describe() -> None:
    synced_at = datetime(2025, 2, 7, 9, 30, tzinfo=UTC)

    assert SyncState().describe() == "Not synced"
    synced = SyncState(last_synced_at=synced_at)
    assert synced.describe() == "Last synced: 2025-02-07 09:30"
    assert SyncState().syncing().describe() == "Syncing recipes..."
    failed = SyncState(last_synced_at=synced_at).failed(NetworkError("offline"))
    assert failed.status is SyncStatus.FAILED
    assert failed.last_synced_at == synced_at
    assert failed.describe().startswith("Sync failed: Network issue")


def test_publish_notifies_subscribers_until_unsubscribed() -> None:
    cache = SnapshotCache()
    seen: list[tuple[Snapshot, SyncState]] = []
    unsubscribe = cache.subscribe(
        lambda snapshot, state: seen.append((snapshot, state))
    )
    snapshot = Snapshot.build([_recipe(1, "Chest", "Storage")], favorites={1})

    cache.publish(snapshot)
    cache.set_state(SyncState().syncing())
    unsubscribe()
    cache.publish(Snapshot())

    assert len(seen) == 2
    assert seen[0][0] is snapshot
    assert seen[1][1].status is SyncStatus.SYNCING
    assert cache.snapshot == Snapshot()


def test_failing_subscriber_does_not_block_others() -> None:
    cache = SnapshotCache()
    seen: list[Snapshot] = []

    def broken(_snapshot: Snapshot, _state: SyncState) -> None:
        raise RuntimeError("boom")

    cache.subscribe(broken)
    cache.subscribe(lambda snapshot, _state: seen.append(snapshot))

    cache.publish(Snapshot())

    assert seen == [Snapshot()]


def test_wait_ready_returns_first_published_snapshot() -> None:
    cache = SnapshotCache()
    snapshot = Snapshot.build([_recipe(1, "Chest", "Storage")], favorites=())

    async def run() -> Snapshot:
        waiter = asyncio.create_task(cache.wait_ready())
        await asyncio.sleep(0)
        assert not waiter.done()
        cache.publish(snapshot)
        return await waiter

    assert not cache.is_ready
    assert asyncio.run(run()) is snapshot
    assert cache.is_ready

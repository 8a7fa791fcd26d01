"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from craftify_sync.adapters.catalog_client import CatalogClient
from craftify_sync.adapters.json_file_store import JsonFileLocalStore
from craftify_sync.config import Settings
from craftify_sync.containers import AppContainer
from craftify_sync.services.gateway import FavoritesRepository, RemoteGateway
from craftify_sync.services.snapshot_cache import SnapshotCache
from craftify_sync.services.sync_engine import SyncEngine

USER_ID = "user-1"

TORCH = {
    "id": 1,
    "name": "Torch",
    "image": "torch",
    "ingredients": ["", "coal", "", "", "stick", "", "", "", ""],
    "output": 4,
    "category": "Tools",
}
CHEST = {
    "id": 2,
    "name": "Chest",
    "image": "chest",
    "ingredients": ["planks"] * 4 + [""] + ["planks"] * 4,
    "output": 1,
    "category": "Storage",
}


@dataclass
class FakeCatalogClient(CatalogClient):
    """Catalog client serving in-memory records, optionally gated."""

    records: list[dict[str, object]] = field(
        default_factory=lambda: [dict(TORCH), dict(CHEST)]
    )
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: int = 0
    failing_fetches: int = 0

    async def fetch_recipes(self) -> list[dict[str, object]]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.failing_fetches > 0:
            self.failing_fetches -= 1
            raise httpx.ConnectError("offline")
        return [dict(record) for record in self.records]

    def drop(self, recipe_id: int) -> None:
        self.records = [r for r in self.records if r["id"] != recipe_id]


@dataclass
class InMemoryFavoritesRepository(FavoritesRepository):
    """Favorites store keyed by user id that can simulate outages."""

    favorites: dict[str, set[int]] = field(default_factory=dict)
    pushes: list[tuple[int, bool]] = field(default_factory=list)
    push_attempts: int = 0
    failing_pushes: int = 0
    push_error: Exception | None = None

    def list_favorite_ids(self, user_id: str) -> set[int]:
        return set(self.favorites.get(user_id, set()))

    def set_favorite(self, user_id: str, recipe_id: int, is_favorite: bool) -> None:
        self.push_attempts += 1
        if self.push_error is not None:
            raise self.push_error
        if self.failing_pushes > 0:
            self.failing_pushes -= 1
            raise httpx.ConnectError("offline")
        self.pushes.append((recipe_id, is_favorite))
        stored = self.favorites.setdefault(user_id, set())
        if is_favorite:
            stored.add(recipe_id)
        else:
            stored.discard(recipe_id)


@dataclass
class FakeClock:
    """Manually advanced UTC clock."""

    now: datetime = field(default_factory=lambda: datetime(2025, 2, 7, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://catalog.test/recipes")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("status", request=request, response=response)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZSJ9.c2ln",
        catalog_base_url="https://catalog.test",
        favorites_user_id=USER_ID,
        admin_token="admin-token",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def local_store(tmp_path: Path) -> JsonFileLocalStore:
    return JsonFileLocalStore(tmp_path / "store")


@pytest.fixture
def catalog_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def favorites_repository() -> InMemoryFavoritesRepository:
    return InMemoryFavoritesRepository()


@pytest.fixture
def gateway(
    catalog_client: FakeCatalogClient,
    favorites_repository: InMemoryFavoritesRepository,
) -> RemoteGateway:
    return RemoteGateway(
        catalog_client=catalog_client,
        favorites_repository=favorites_repository,
        user_id=USER_ID,
        timeout_seconds=2.0,
        retry_attempts=3,
        retry_base_delay_seconds=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(
    local_store: JsonFileLocalStore, gateway: RemoteGateway, clock: FakeClock
) -> SyncEngine:
    return SyncEngine(
        local_store=local_store,
        gateway=gateway,
        cache=SnapshotCache(),
        clock=clock,
    )


@pytest.fixture
def container(settings: Settings, engine: SyncEngine) -> AppContainer:
    async def close_resources() -> None:
        await engine.close()

    return AppContainer(
        settings=settings,
        sync_engine=engine,
        close_resources=close_resources,
    )

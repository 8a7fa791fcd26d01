"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from craftify_sync.adapters.catalog_client import HttpxCatalogClient
from craftify_sync.adapters.json_file_store import JsonFileLocalStore
from craftify_sync.adapters.supabase_favorites_repository import (
    SupabaseFavoritesRepository,
)
from craftify_sync.config import Settings
from craftify_sync.services.gateway import RemoteGateway
from craftify_sync.services.snapshot_cache import SnapshotCache
from craftify_sync.services.sync_engine import SyncEngine


@dataclass
class AppContainer:
    """Holds the process-wide sync engine and its collaborators."""

    settings: Settings
    sync_engine: SyncEngine
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    catalog_client = HttpxCatalogClient.create(
        base_url=resolved_settings.catalog_base_url,
        api_key=resolved_settings.catalog_api_key,
    )
    gateway = RemoteGateway(
        catalog_client=catalog_client,
        favorites_repository=SupabaseFavoritesRepository(supabase_client),
        user_id=resolved_settings.favorites_user_id,
        timeout_seconds=resolved_settings.remote_timeout_seconds,
        retry_attempts=resolved_settings.remote_retry_attempts,
        retry_base_delay_seconds=resolved_settings.remote_retry_base_delay_seconds,
    )
    sync_engine = SyncEngine(
        local_store=JsonFileLocalStore(resolved_settings.cache_dir),
        gateway=gateway,
        cache=SnapshotCache(),
        refresh_cooldown_seconds=resolved_settings.refresh_cooldown_seconds,
    )

    async def close_resources() -> None:
        await sync_engine.close()
        await catalog_client.close()

    return AppContainer(
        settings=resolved_settings,
        sync_engine=sync_engine,
        close_resources=close_resources,
    )

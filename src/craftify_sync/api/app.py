"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from craftify_sync.api.admin import router as admin_router
from craftify_sync.api.schemas import (
    FavoriteModel,
    RecipeModel,
    SnapshotModel,
    SyncStateModel,
)
from craftify_sync.app_logging import configure_logging
from craftify_sync.containers import AppContainer
from craftify_sync.domain.errors import RecipeNotFoundError, StorageError
from craftify_sync.services.sync_engine import SyncEngine


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.sync_engine.start()
        except Exception:
            logger.exception("Failed to start the sync engine")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/snapshot")
    async def snapshot(
        request: Request, category: str | None = None, search: str = ""
    ) -> SnapshotModel:
        """Return the current catalog snapshot, optionally filtered."""
        engine = _engine(request)
        return SnapshotModel.from_snapshot(
            engine.current_snapshot(), category=category, search=search
        )

    @app.get("/sync-state")
    async def sync_state(request: Request) -> SyncStateModel:
        """Return the state behind the sync indicator."""
        return SyncStateModel.from_state(_engine(request).current_sync_state())

    @app.post("/refresh")
    async def refresh(request: Request, force: bool = True) -> SyncStateModel:
        """Run or join a catalog refresh and report the resulting state."""
        engine = _engine(request)
        try:
            if force:
                await engine.refresh()
            else:
                await engine.refresh_if_stale()
        except StorageError as exc:
            logger.exception("Refresh could not be persisted")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        return SyncStateModel.from_state(engine.current_sync_state())

    @app.get("/favorites")
    async def favorites(request: Request) -> list[RecipeModel]:
        """Return favorite recipes in catalog order."""
        snapshot = _engine(request).current_snapshot()
        return [
            RecipeModel.from_recipe(recipe) for recipe in snapshot.favorite_recipes()
        ]

    @app.get("/favorites/{recipe_id}")
    async def favorite(recipe_id: int, request: Request) -> FavoriteModel:
        """Return whether a recipe is a favorite."""
        return FavoriteModel(
            recipe_id=recipe_id, is_favorite=_engine(request).is_favorite(recipe_id)
        )

    @app.post("/favorites/{recipe_id}/toggle")
    async def toggle_favorite(recipe_id: int, request: Request) -> FavoriteModel:
        """Flip a favorite; the change is visible before it reaches the server."""
        engine = _engine(request)
        try:
            is_favorite = engine.toggle_favorite(recipe_id)
        except RecipeNotFoundError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        except StorageError as exc:
            logger.exception(
                "Failed to persist favorite", extra={"recipe_id": recipe_id}
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        return FavoriteModel(recipe_id=recipe_id, is_favorite=is_favorite)

    @app.post("/recent-searches/{recipe_id}")
    async def record_recent_search(recipe_id: int, request: Request) -> list[str]:
        """Record that a recipe was opened from search."""
        try:
            names = _engine(request).record_recent_search(recipe_id)
        except RecipeNotFoundError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        except StorageError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        return list(names)

    @app.delete("/recent-searches")
    async def clear_recent_searches(request: Request) -> dict[str, str]:
        """Forget all recent searches."""
        try:
            _engine(request).clear_recent_searches()
        except StorageError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        return {"status": "ok"}

    return app


def _engine(request: Request) -> SyncEngine:
    container: AppContainer = request.app.state.container
    return container.sync_engine

"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from craftify_sync.api.schemas import ClearResultModel

if TYPE_CHECKING:
    from craftify_sync.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/cache/clear", dependencies=[Depends(require_admin)])
async def clear_cache(request: Request) -> ClearResultModel:
    """Wipe the local catalog and repopulate it from the remote service."""
    container: AppContainer = request.app.state.container
    return ClearResultModel(success=await container.sync_engine.clear_cache())


@router.post("/data/clear", dependencies=[Depends(require_admin)])
async def clear_all_data(request: Request) -> ClearResultModel:
    """Wipe the cache, favorites and recent searches."""
    container: AppContainer = request.app.state.container
    return ClearResultModel(success=await container.sync_engine.clear_all_data())

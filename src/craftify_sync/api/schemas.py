"""Pydantic response models for the consumer API."""

from datetime import datetime

from pydantic import BaseModel

from craftify_sync.domain.recipes import Recipe, Snapshot
from craftify_sync.domain.sync import SyncState


class RecipeModel(BaseModel):
    """Recipe payload."""

    id: int
    name: str
    image: str
    ingredients: list[str]
    output: int
    category: str
    alternate_ingredients: list[list[str]] = []
    alternate_outputs: list[int] = []
    image_remark: str | None = None
    remarks: str | None = None

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> "RecipeModel":
        return cls(
            id=recipe.id,
            name=recipe.name,
            image=recipe.image,
            ingredients=list(recipe.ingredients),
            output=recipe.output,
            category=recipe.category,
            alternate_ingredients=[list(grid) for grid in recipe.alternate_ingredients],
            alternate_outputs=list(recipe.alternate_outputs),
            image_remark=recipe.image_remark,
            remarks=recipe.remarks,
        )


class SnapshotModel(BaseModel):
    """Catalog snapshot payload, optionally filtered."""

    recipes: list[RecipeModel]
    categories: list[str]
    favorites: list[int]
    recent_searches: list[str]

    @classmethod
    def from_snapshot(
        cls, snapshot: Snapshot, category: str | None = None, search: str = ""
    ) -> "SnapshotModel":
        return cls(
            recipes=[
                RecipeModel.from_recipe(recipe)
                for recipe in snapshot.filter(category=category, search=search)
            ],
            categories=snapshot.sorted_categories(),
            favorites=sorted(snapshot.favorites),
            recent_searches=list(snapshot.recent_searches),
        )


class SyncStateModel(BaseModel):
    """Sync indicator payload."""

    status: str
    error: str | None = None
    description: str
    last_synced_at: datetime | None = None

    @classmethod
    def from_state(cls, state: SyncState) -> "SyncStateModel":
        return cls(
            status=state.status.value,
            error=state.error.user_message if state.error else None,
            description=state.describe(),
            last_synced_at=state.last_synced_at,
        )


class FavoriteModel(BaseModel):
    """Favorite flag for a single recipe."""

    recipe_id: int
    is_favorite: bool


class ClearResultModel(BaseModel):
    """Outcome of a cache or data wipe."""

    success: bool

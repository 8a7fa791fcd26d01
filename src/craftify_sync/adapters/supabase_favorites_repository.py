"""Supabase implementation for synced favorite recipes."""

from dataclasses import dataclass

from supabase import Client

from craftify_sync.services.gateway import FavoritesRepository

_TABLE = "favorite_recipes"


@dataclass
class SupabaseFavoritesRepository(FavoritesRepository):
    """Supabase-backed store of favorite recipe ids per user."""

    client: Client

    def list_favorite_ids(self, user_id: str) -> set[int]:
        """Return the favorite recipe ids recorded for a user."""
        response = (
            self.client.table(_TABLE)
            .select("recipe_id")
            .eq("user_id", user_id)
            .execute()
        )
        return {int(row["recipe_id"]) for row in response.data or []}

    def set_favorite(self, user_id: str, recipe_id: int, is_favorite: bool) -> None:
        """Record or remove a favorite; repeating a call is harmless."""
        if is_favorite:
            self.client.table(_TABLE).upsert(
                {"user_id": user_id, "recipe_id": recipe_id},
                on_conflict="user_id,recipe_id",
            ).execute()
            return
        (
            self.client.table(_TABLE)
            .delete()
            .eq("user_id", user_id)
            .eq("recipe_id", recipe_id)
            .execute()
        )

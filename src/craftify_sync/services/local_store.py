"""Local persistence contract for the offline catalog."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from craftify_sync.domain.recipes import Recipe


@dataclass(frozen=True)
class StoredState:
    """Everything persisted on the device between launches."""

    recipes: tuple[Recipe, ...]
    favorites: frozenset[int]
    pending_changes: dict[int, bool] = field(default_factory=dict)
    recent_searches: tuple[str, ...] = ()


class LocalStore(Protocol):
    """Durable storage for the catalog and favorites."""

    def load(self) -> StoredState | None:
        """Return the last persisted state, or None on first launch."""

    def save(
        self,
        recipes: Iterable[Recipe],
        favorites: Iterable[int],
        pending_changes: Mapping[int, bool] | None = None,
        recent_searches: Iterable[str] | None = None,
    ) -> None:
        """Atomically replace all persisted state."""

    def update_favorites(
        self,
        favorites: Iterable[int],
        pending_changes: Mapping[int, bool] | None = None,
    ) -> None:
        """Atomically replace the favorite set, keeping the catalog."""

    def update_recent_searches(self, names: Iterable[str]) -> None:
        """Atomically replace the recent search list."""

    def clear(self) -> None:
        """Delete all persisted state."""

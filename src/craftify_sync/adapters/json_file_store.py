"""JSON file implementation of the local store."""

import json
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from craftify_sync.domain.errors import StorageError
from craftify_sync.domain.recipes import Recipe
from craftify_sync.services.local_store import LocalStore, StoredState

_FORMAT_VERSION = 1
_STATE_FILE_NAME = "craftify_state.json"

_logger = logging.getLogger(__name__)


@dataclass
class JsonFileLocalStore(LocalStore):
    """Stores state in a single JSON file replaced with write-then-swap."""

    directory: Path
    file_name: str = _STATE_FILE_NAME

    @property
    def path(self) -> Path:
        return self.directory / self.file_name

    def load(self) -> StoredState | None:
        """Return persisted state, or None if nothing was ever saved."""
        document = self._read_document()
        if document is None:
            return None
        try:
            return StoredState(
                recipes=tuple(_parse_recipe(row) for row in document["recipes"]),
                favorites=frozenset(int(fav) for fav in document["favorites"]),
                pending_changes={
                    int(key): bool(value)
                    for key, value in document.get("pending_changes", {}).items()
                },
                recent_searches=tuple(
                    str(name) for name in document.get("recent_searches", [])
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Corrupt local state in {self.path}") from exc

    def save(
        self,
        recipes: Iterable[Recipe],
        favorites: Iterable[int],
        pending_changes: Mapping[int, bool] | None = None,
        recent_searches: Iterable[str] | None = None,
    ) -> None:
        """Replace the catalog, favorites and searches in one atomic write."""
        document = {
            "version": _FORMAT_VERSION,
            "recipes": [_recipe_row(recipe) for recipe in recipes],
            "favorites": sorted(favorites),
            "pending_changes": _pending_row(pending_changes),
            "recent_searches": list(recent_searches or []),
        }
        self._write_document(document)
        _logger.info(
            "Saved local catalog: recipes=%s favorites=%s",
            len(document["recipes"]),
            len(document["favorites"]),
        )

    def update_favorites(
        self,
        favorites: Iterable[int],
        pending_changes: Mapping[int, bool] | None = None,
    ) -> None:
        """Replace only the favorite set and pending changes."""
        document = self._require_document()
        document["favorites"] = sorted(favorites)
        document["pending_changes"] = _pending_row(pending_changes)
        self._write_document(document)

    def update_recent_searches(self, names: Iterable[str]) -> None:
        """Replace only the recent search list."""
        document = self._require_document()
        document["recent_searches"] = list(names)
        self._write_document(document)

    def clear(self) -> None:
        """Remove the state file if present."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to clear {self.path}") from exc
        _logger.info("Cleared local catalog at %s", self.path)

    def _require_document(self) -> dict[str, object]:
        document = self._read_document()
        if document is None:
            raise StorageError("No catalog has been saved yet")
        return document

    def _read_document(self) -> dict[str, object] | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Failed to read {self.path}") from exc
        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise StorageError(f"Corrupt local state in {self.path}") from exc
        if not isinstance(document, dict):
            raise StorageError(f"Corrupt local state in {self.path}")
        return document

    def _write_document(self, document: dict[str, object]) -> None:
        """Write to a temp file, fsync, then swap it over the state file."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.file_name}.", suffix=".tmp", dir=self.directory
            )
        except OSError as exc:
            raise StorageError(f"Failed to prepare {self.directory}") from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(json.dumps(document))
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {self.path}") from exc


def _pending_row(pending_changes: Mapping[int, bool] | None) -> dict[str, bool]:
    return {str(key): value for key, value in (pending_changes or {}).items()}


def _recipe_row(recipe: Recipe) -> dict[str, object]:
    return {
        "id": recipe.id,
        "name": recipe.name,
        "image": recipe.image,
        "ingredients": list(recipe.ingredients),
        "output": recipe.output,
        "category": recipe.category,
        "alternate_ingredients": [list(grid) for grid in recipe.alternate_ingredients],
        "alternate_outputs": list(recipe.alternate_outputs),
        "image_remark": recipe.image_remark,
        "remarks": recipe.remarks,
    }


def _parse_recipe(row: dict[str, object]) -> Recipe:
    return Recipe(
        id=int(row["id"]),
        name=str(row["name"]),
        image=str(row["image"]),
        ingredients=tuple(row["ingredients"]),
        output=int(row["output"]),
        category=str(row.get("category", "")),
        alternate_ingredients=tuple(
            tuple(grid) for grid in row.get("alternate_ingredients", [])
        ),
        alternate_outputs=tuple(
            int(value) for value in row.get("alternate_outputs", [])
        ),
        image_remark=row.get("image_remark"),
        remarks=row.get("remarks"),
    )

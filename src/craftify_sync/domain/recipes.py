"""Domain models for the recipe catalog."""

from collections.abc import Iterable
from dataclasses import dataclass, field

GRID_SLOTS = 9
MAX_RECENT_SEARCHES = 10


@dataclass(frozen=True)
class Recipe:
    """A crafting recipe as ingested from the catalog."""

    id: int
    name: str
    image: str
    ingredients: tuple[str, ...]
    output: int
    category: str = ""
    alternate_ingredients: tuple[tuple[str, ...], ...] = ()
    alternate_outputs: tuple[int, ...] = ()
    image_remark: str | None = None
    remarks: str | None = None

    def __post_init__(self) -> None:
        if len(self.ingredients) > GRID_SLOTS:
            raise ValueError(f"Recipe {self.id} uses more than {GRID_SLOTS} slots")
        if any(len(grid) > GRID_SLOTS for grid in self.alternate_ingredients):
            raise ValueError(f"Recipe {self.id} has an oversized alternate grid")
        if self.output <= 0:
            raise ValueError(f"Recipe {self.id} has a non-positive output")


def sort_recipes(recipes: Iterable[Recipe]) -> tuple[Recipe, ...]:
    """Order recipes by name, breaking ties by id."""
    return tuple(sorted(recipes, key=lambda recipe: (recipe.name, recipe.id)))


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of the catalog and favorites published to readers."""

    recipes: tuple[Recipe, ...] = ()
    categories: frozenset[str] = frozenset()
    favorites: frozenset[int] = frozenset()
    recent_searches: tuple[str, ...] = ()
    _by_id: dict[int, Recipe] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_by_id", {recipe.id: recipe for recipe in self.recipes}
        )

    @classmethod
    def build(
        cls,
        recipes: Iterable[Recipe],
        favorites: Iterable[int],
        recent_searches: Iterable[str] = (),
    ) -> "Snapshot":
        """Build a snapshot, pruning favorites and searches to the catalog."""
        ordered = sort_recipes(recipes)
        ids = {recipe.id for recipe in ordered}
        names = {recipe.name for recipe in ordered}
        return cls(
            recipes=ordered,
            categories=frozenset(r.category for r in ordered if r.category),
            favorites=frozenset(fav for fav in favorites if fav in ids),
            recent_searches=tuple(
                name for name in recent_searches if name in names
            )[:MAX_RECENT_SEARCHES],
        )

    @property
    def recipe_ids(self) -> frozenset[int]:
        """Return the ids present in the catalog."""
        return frozenset(self._by_id)

    def get(self, recipe_id: int) -> Recipe | None:
        """Return a recipe by id, if present."""
        return self._by_id.get(recipe_id)

    def sorted_categories(self) -> list[str]:
        """Return category labels in alphabetical order."""
        return sorted(self.categories)

    def favorite_recipes(self) -> list[Recipe]:
        """Return favorite recipes in catalog order."""
        return [recipe for recipe in self.recipes if recipe.id in self.favorites]

    def filter(self, category: str | None = None, search: str = "") -> list[Recipe]:
        """Filter recipes by exact category and case-insensitive name match."""
        needle = search.strip().lower()
        return [
            recipe
            for recipe in self.recipes
            if (category is None or recipe.category == category)
            and (not needle or needle in recipe.name.lower())
        ]

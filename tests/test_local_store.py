"""Tests for the JSON file local store."""

import pytest

from craftify_sync.adapters import json_file_store
from craftify_sync.adapters.json_file_store import JsonFileLocalStore
from craftify_sync.domain.errors import StorageError
from craftify_sync.domain.recipes import Recipe


def _recipe(recipe_id: int, name: str, category: str = "Tools") -> Recipe:
    return Recipe(
        id=recipe_id,
        name=name,
        image=name.lower(),
        ingredients=("stick", "", "coal"),
        output=1,
        category=category,
    )


def test_load_returns_none_on_first_launch(local_store: JsonFileLocalStore) -> None:
    assert local_store.load() is None


def test_save_and_load_state(local_store: JsonFileLocalStore) -> None:
    recipe = Recipe(
        id=7,
        name="Bed",
        image="bed",
        ingredients=("", "", "", "wool", "wool", "wool", "planks", "planks", "planks"),
        output=1,
        category="Furniture",
        alternate_ingredients=(("wool", "planks"),),
        alternate_outputs=(1,),
        remarks="Any wool color",
    )

    local_store.save(
        [recipe], {7}, pending_changes={7: True}, recent_searches=["Bed"]
    )
    stored = local_store.load()

    assert stored is not None
    assert stored.recipes == (recipe,)
    assert stored.favorites == frozenset({7})
    assert stored.pending_changes == {7: True}
    assert stored.recent_searches == ("Bed",)


def test_update_favorites_keeps_catalog(local_store: JsonFileLocalStore) -> None:
    local_store.save([_recipe(1, "Torch"), _recipe(2, "Chest")], {1})

    local_store.update_favorites({2}, pending_changes={2: True, 1: False})
    stored = local_store.load()

    assert stored is not None
    assert [recipe.id for recipe in stored.recipes] == [1, 2]
    assert stored.favorites == frozenset({2})
    assert stored.pending_changes == {2: True, 1: False}


def test_update_favorites_requires_catalog(local_store: JsonFileLocalStore) -> None:
    with pytest.raises(StorageError):
        local_store.update_favorites({1})


def test_failed_save_keeps_previous_state(
    local_store: JsonFileLocalStore, monkeypatch
) -> None:
    local_store.save([_recipe(1, "Torch")], {1})

    def crash(*_args, **_kwargs) -> None:
        raise OSError("power loss")

    monkeypatch.setattr(json_file_store.os, "replace", crash)

    with pytest.raises(StorageError):
        local_store.save([_recipe(1, "Torch"), _recipe(2, "Chest")], {1, 2})

    monkeypatch.undo()
    stored = local_store.load()
    assert stored is not None
    assert [recipe.name for recipe in stored.recipes] == ["Torch"]
    assert stored.favorites == frozenset({1})
    assert list(local_store.directory.glob("*.tmp")) == []


def test_corrupt_state_raises_storage_error(local_store: JsonFileLocalStore) -> None:
    local_store.directory.mkdir(parents=True)
    local_store.path.write_text('{"recipes": [{"id": 1', encoding="utf-8")

    with pytest.raises(StorageError):
        local_store.load()

    assert local_store.path.read_text(encoding="utf-8") == '{"recipes": [{"id": 1'


def test_clear_removes_state(local_store: JsonFileLocalStore) -> None:
    local_store.save([_recipe(1, "Torch")], set())

    local_store.clear()
    local_store.clear()

    assert local_store.load() is None

#!/usr/bin/env python3
"""
Test script for collection service functionality.
Tests collection membership and settings, suggestions, cookbook CRUD and
saving imported recipes.
"""

import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from models import (
    Ingredient, Recipe, RecipeIngredientLine, UserRecipe, FormattedRecipe, FormattedIngredient
)
from services.collection_service import CollectionService, validate_formatted_recipe
from services.storage_service import create_storage_for_testing
from services.suggestion_service import RankingStrategy
from utils import RecipeNotFoundError, RecipeValidationError


def create_test_service():
    """Collection service over in-memory storage with a small catalog"""
    print("Creating test data...")
    storage = create_storage_for_testing()
    storage.initialize(
        recipes=[
            Recipe(id=1, name="Chicken Rice", ingredients=[
                RecipeIngredientLine(name="Chicken Breast", amount=1, unit="lb"),
                RecipeIngredientLine(name="Rice", amount=2, unit="cup"),
                RecipeIngredientLine(name="Salt"),
            ]),
            Recipe(id=2, name="Tomato Rice", ingredients=[
                RecipeIngredientLine(name="Rice", amount=1, unit="cup"),
                RecipeIngredientLine(name="Tomato", amount=2),
                RecipeIngredientLine(name="Onion", amount=1),
            ]),
            Recipe(id=3, name="Garden Salad", ingredients=[
                RecipeIngredientLine(name="Lettuce", amount=1, unit="head"),
            ]),
        ],
        ingredients=[
            Ingredient(id=1, name="Chicken Breast", category="meat"),
            Ingredient(id=2, name="Rice", category="grains"),
            Ingredient(id=3, name="Salt", category="spices"),
            Ingredient(id=4, name="Tomato", category="produce"),
            Ingredient(id=5, name="Onion", category="produce"),
            Ingredient(id=6, name="Lettuce", category="produce"),
        ]
    )
    return CollectionService(storage=storage)


def test_collection_membership():
    """Test adding, removing and toggling collection recipes"""
    print("\n[TEST] Collection membership:")
    service = create_test_service()

    assert service.add_to_collection(1)
    assert not service.add_to_collection(1)
    assert len(service.get_collection()) == 1
    entry = service.get_collection()[0]
    assert entry.include_in_shopping_list
    assert entry.times_cooked == 0
    print("[OK] Collection has set semantics")

    service.add_to_collection(99)
    assert [r.name for r in service.get_collection_recipes()] == ["Chicken Rice"]
    print("[OK] Unknown recipe ids are skipped when resolving")

    assert service.remove_from_collection(1)
    assert not service.remove_from_collection(1)
    assert not service.is_in_collection(1)

    assert service.toggle_collection(2) is True
    assert service.is_in_collection(2)
    assert service.toggle_collection(2) is False
    assert not service.is_in_collection(2)

    service.guard.try_acquire(('collection', 2))
    assert service.toggle_collection(2) is None
    assert not service.is_in_collection(2)
    print("[OK] Toggle flips membership and drops overlapping requests")


def test_collection_settings():
    """Test per-entry shopping list flag, multiplier and cook count"""
    service = create_test_service()
    service.add_to_collection(1)

    assert service.set_include_in_shopping_list(1, False)
    assert not service.get_collection()[0].include_in_shopping_list

    assert service.set_multiplier(1, 2)
    assert service.get_collection()[0].multiplier == 2
    with pytest.raises(ValueError):
        service.set_multiplier(1, 0)

    assert service.mark_cooked(1)
    assert service.mark_cooked(1)
    assert service.get_collection()[0].times_cooked == 2

    assert service.update_collection_item(1, notes="Less salt")
    assert service.get_collection()[0].notes == "Less salt"
    with pytest.raises(ValueError):
        service.update_collection_item(1, recipe_id=5)

    assert not service.update_collection_item(2, notes="Not saved")
    assert not service.mark_cooked(2)
    print("[OK] Collection entry settings")


def test_suggestions():
    """Test suggestions against the fridge"""
    print("\n[TEST] Suggestions:")
    service = create_test_service()

    assert service.get_suggestions() == []
    print("[OK] Empty fridge gives no suggestions")

    service.pantry.add_to_fridge(1)
    service.pantry.add_to_fridge(2)

    suggestions = service.get_suggestions()
    assert [s.recipe.name for s in suggestions] == ["Chicken Rice", "Tomato Rice"]
    assert suggestions[0].missing_count == 0
    assert suggestions[0].match_status == "You have everything!"
    assert suggestions[1].match_status == "Missing 2 ingredients"
    print("[OK] Ranked by key matches")

    service.add_to_collection(1)
    assert [s.recipe.name for s in service.get_suggestions()] == ["Tomato Rice"]
    assert len(service.get_suggestions(limit=0)) == 0
    assert len(service.get_suggestions(strategy=RankingStrategy.MISSING_ONLY)) == 1
    print("[OK] Collected recipes drop out of suggestions")


def test_cookbook_crud():
    """Test user recipe lifecycle"""
    print("\n[TEST] Cookbook:")
    service = create_test_service()

    first = service.add_user_recipe(UserRecipe(id=0, name="Grandma's Soup", include_in_shopping_list=False))
    second = service.add_user_recipe(UserRecipe(id=0, name="Weeknight Pasta"))
    assert (first.id, second.id) == (1, 2)
    assert first.include_in_shopping_list
    print("[OK] Sequential cookbook ids")

    updated = service.update_user_recipe(1, name="Grandma's Chicken Soup", multiplier=2.0)
    assert updated.name == "Grandma's Chicken Soup"
    assert service.get_user_recipe(1).multiplier == 2.0

    with pytest.raises(ValueError):
        service.update_user_recipe(1, id=7)
    with pytest.raises(ValueError):
        service.update_user_recipe(1, rating=5)
    with pytest.raises(RecipeNotFoundError):
        service.update_user_recipe(42, name="Nope")
    print("[OK] Update validates fields")

    assert service.toggle_user_recipe_shopping_list(2) is False
    assert service.toggle_user_recipe_shopping_list(2) is True

    assert service.delete_user_recipe(1)
    assert not service.delete_user_recipe(1)
    with pytest.raises(RecipeNotFoundError):
        service.get_user_recipe(1)
    assert [r.name for r in service.get_user_recipes()] == ["Weeknight Pasta"]

    third = service.add_user_recipe(UserRecipe(id=0, name="Banana Bread"))
    assert third.id == 3
    print("[OK] Ids keep increasing after a delete")


def test_save_imported_recipe():
    """Test converting an imported recipe into the cookbook"""
    service = create_test_service()

    formatted = FormattedRecipe(
        name="  Pancakes ",
        ingredients=[
            FormattedIngredient(name="flour", amount="1 1/2", unit="cup"),
            FormattedIngredient(name="salt", amount="", unit=""),
            FormattedIngredient(name="   ", amount="2"),
        ],
        instructions=["Mix everything.", "  ", "Cook until golden."],
        prep_time="10 minutes",
        cook_time="",
        servings="4"
    )
    saved = service.save_imported_recipe(formatted)

    assert saved.id == 1
    assert saved.name == "Pancakes"
    assert [(i.name, i.amount, i.unit) for i in saved.ingredients] == [
        ("flour", 1.5, "cup"), ("salt", 0.0, "")
    ]
    assert [(s.step, s.text) for s in saved.instructions] == [
        (1, "Mix everything."), (2, "Cook until golden.")
    ]
    assert (saved.prep_time, saved.cook_time, saved.servings) == (10, 0, 4)
    assert service.get_user_recipe(1).name == "Pancakes"
    print("[OK] Imported recipe saved")

    problems = validate_formatted_recipe(FormattedRecipe(name=" "))
    assert len(problems) == 3

    with pytest.raises(RecipeValidationError) as exc_info:
        service.save_imported_recipe(FormattedRecipe(
            name="Toast", instructions=["Toast the bread."]
        ))
    assert exc_info.value.problems == ["At least one ingredient is required"]
    assert len(service.get_user_recipes()) == 1
    print("[OK] Invalid imports are rejected")


def test_shopping_list_integration():
    """Test the shopping list through the collection service"""
    service = create_test_service()
    service.pantry.add_to_fridge(2)
    service.add_to_collection(1)
    service.add_to_collection(2)
    service.set_multiplier(2, 3)
    service.set_include_in_shopping_list(1, False)

    shopping = {entry.name: entry for entry in service.pantry.get_shopping_list()}
    assert set(shopping) == {"Tomato", "Onion"}
    assert shopping["Tomato"].amount == 6
    assert shopping["Onion"].recipes == ["Tomato Rice"]
    print("[OK] Shopping list follows collection settings")


if __name__ == "__main__":
    print("=" * 60)
    print("COLLECTION SERVICE TESTS")
    print("=" * 60)

    try:
        test_collection_membership()
        test_collection_settings()
        test_suggestions()
        test_cookbook_crud()
        test_save_imported_recipe()
        test_shopping_list_integration()
        print("\n[SUCCESS] All collection tests passed!")
        sys.exit(0)
    except AssertionError as e:
        print(f"[FAIL] Collection test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

"""
Collection and cookbook service for Fridge Cookbook.

The collection holds catalog recipes the user saved; the cookbook holds
recipes the user wrote or imported. Both feed the shopping list and the
suggestion ranker.
"""

import math
from dataclasses import fields
from datetime import datetime
from typing import Any, List, Optional

from models import (
    CollectionEntry, Recipe, UserRecipe, RecipeIngredientLine, InstructionStep,
    FormattedRecipe, RecipeSuggestion
)
from services.pantry_service import PantryService
from services.storage_service import CookbookStorage, get_storage, next_id
from services.suggestion_service import RankingStrategy, compute_suggestions
from services.unit_normalizer import parse_fraction_amount, parse_float_prefix
from utils import (
    get_logger, get_config, InFlightGuard, RecipeNotFoundError, RecipeValidationError
)

logger = get_logger(__name__)

# Collection entry fields callers may change
_UPDATABLE_COLLECTION_FIELDS = {'include_in_shopping_list', 'multiplier', 'notes', 'times_cooked'}


def _parse_int(value: Any, default: int) -> int:
    """Leading integer of a form value ("15 min" -> 15), default when there is none"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    parsed = parse_float_prefix(str(value or ''))
    return default if math.isnan(parsed) else int(parsed)


def validate_formatted_recipe(recipe: FormattedRecipe) -> List[str]:
    """Problems that prevent saving an imported recipe; empty when it can be saved"""
    problems = []
    if not (recipe.name or '').strip():
        problems.append("Recipe name is required")
    if not any((i.name or '').strip() for i in recipe.ingredients):
        problems.append("At least one ingredient is required")
    if not any((step or '').strip() for step in recipe.instructions):
        problems.append("At least one instruction is required")
    return problems


class CollectionService:
    """
    Service for the recipe collection and the user's cookbook.

    Collection membership has set semantics per recipe id. Cookbook recipes
    get sequential ids in their own namespace.
    """

    def __init__(self, storage: Optional[CookbookStorage] = None,
                 pantry_service: Optional[PantryService] = None,
                 guard: Optional[InFlightGuard] = None):
        self.storage = storage or get_storage()
        self.guard = guard or InFlightGuard()
        self.pantry = pantry_service or PantryService(self.storage, self.guard)

    # Collection

    def get_collection(self) -> List[CollectionEntry]:
        return self.storage.get_collection()

    def get_collection_recipes(self) -> List[Recipe]:
        """Catalog recipes in collection order"""
        catalog = {r.id: r for r in self.storage.get_recipes()}
        return [catalog[e.recipe_id] for e in self.get_collection() if e.recipe_id in catalog]

    def is_in_collection(self, recipe_id: int) -> bool:
        return any(entry.recipe_id == recipe_id for entry in self.get_collection())

    def add_to_collection(self, recipe_id: int) -> bool:
        """Save a catalog recipe. Returns False if it was already saved."""
        collection = self.get_collection()
        if any(entry.recipe_id == recipe_id for entry in collection):
            return False

        collection.append(CollectionEntry(
            recipe_id=recipe_id,
            added_date=datetime.now().isoformat(),
            include_in_shopping_list=True,
            times_cooked=0
        ))
        self.storage.save_collection(collection)
        logger.info(f"Added recipe {recipe_id} to collection")
        return True

    def remove_from_collection(self, recipe_id: int) -> bool:
        collection = self.get_collection()
        remaining = [entry for entry in collection if entry.recipe_id != recipe_id]
        if len(remaining) == len(collection):
            return False

        self.storage.save_collection(remaining)
        logger.info(f"Removed recipe {recipe_id} from collection")
        return True

    def toggle_collection(self, recipe_id: int) -> Optional[bool]:
        """
        Flip collection membership of a recipe.

        Returns the new membership, or None when a toggle for the same recipe
        is still running and this request was dropped.
        """
        key = ('collection', recipe_id)
        with self.guard.hold(key) as acquired:
            if not acquired:
                logger.debug(f"Toggle already in progress for {key}")
                return None

            if self.is_in_collection(recipe_id):
                self.remove_from_collection(recipe_id)
                return False
            self.add_to_collection(recipe_id)
            return True

    def update_collection_item(self, recipe_id: int, **updates) -> bool:
        """
        Update fields of a collection entry (include_in_shopping_list,
        multiplier, notes, times_cooked). Returns False if the recipe is not
        in the collection.
        """
        unknown = set(updates) - _UPDATABLE_COLLECTION_FIELDS
        if unknown:
            raise ValueError(f"Cannot update collection fields: {', '.join(sorted(unknown))}")

        collection = self.get_collection()
        entry = next((e for e in collection if e.recipe_id == recipe_id), None)
        if entry is None:
            return False

        for name, value in updates.items():
            setattr(entry, name, value)
        self.storage.save_collection(collection)
        return True

    def set_include_in_shopping_list(self, recipe_id: int, include: bool) -> bool:
        return self.update_collection_item(recipe_id, include_in_shopping_list=include)

    def set_multiplier(self, recipe_id: int, multiplier: float) -> bool:
        if multiplier <= 0:
            raise ValueError("Multiplier must be positive")
        return self.update_collection_item(recipe_id, multiplier=multiplier)

    def mark_cooked(self, recipe_id: int) -> bool:
        """Increment the times-cooked counter of a collection entry"""
        entry = next((e for e in self.get_collection() if e.recipe_id == recipe_id), None)
        if entry is None:
            return False
        return self.update_collection_item(recipe_id, times_cooked=entry.times_cooked + 1)

    # Suggestions

    def get_suggestions(self, limit: Optional[int] = None,
                        strategy: RankingStrategy = RankingStrategy.KEY_MATCH_FIRST) -> List[RecipeSuggestion]:
        """Rank uncollected catalog recipes against the current fridge"""
        config = get_config()
        return compute_suggestions(
            catalog_recipes=self.storage.get_recipes(),
            collection_recipe_ids=[e.recipe_id for e in self.get_collection()],
            owned=self.pantry.get_fridge_ingredients(),
            ingredient_catalog=self.storage.get_ingredients(),
            limit=config.suggestion_limit if limit is None else limit,
            strategy=strategy,
            spice_exclusion_ids=config.spice_exclusion_ids
        )

    # Cookbook

    def get_user_recipes(self) -> List[UserRecipe]:
        return self.storage.get_user_recipes()

    def get_user_recipe(self, recipe_id: int) -> UserRecipe:
        recipe = next((r for r in self.get_user_recipes() if r.id == recipe_id), None)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        return recipe

    def add_user_recipe(self, recipe: UserRecipe) -> UserRecipe:
        """Store a new cookbook recipe; its id and added date are assigned here"""
        recipes = self.get_user_recipes()
        recipe.id = next_id([r.id for r in recipes])
        recipe.added_date = datetime.now().isoformat()
        recipe.include_in_shopping_list = True
        recipes.append(recipe)
        self.storage.save_user_recipes(recipes)
        logger.info(f"Added cookbook recipe '{recipe.name}' ({recipe.id})")
        return recipe

    def update_user_recipe(self, recipe_id: int, **updates) -> UserRecipe:
        valid_fields = {f.name for f in fields(UserRecipe)} - {'id'}
        unknown = set(updates) - valid_fields
        if unknown:
            raise ValueError(f"Cannot update recipe fields: {', '.join(sorted(unknown))}")

        recipes = self.get_user_recipes()
        recipe = next((r for r in recipes if r.id == recipe_id), None)
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)

        for name, value in updates.items():
            setattr(recipe, name, value)
        self.storage.save_user_recipes(recipes)
        return recipe

    def delete_user_recipe(self, recipe_id: int) -> bool:
        recipes = self.get_user_recipes()
        remaining = [r for r in recipes if r.id != recipe_id]
        if len(remaining) == len(recipes):
            return False

        self.storage.save_user_recipes(remaining)
        logger.info(f"Deleted cookbook recipe {recipe_id}")
        return True

    def toggle_user_recipe_shopping_list(self, recipe_id: int) -> bool:
        """Flip the shopping list flag of a cookbook recipe; returns the new value"""
        recipe = self.get_user_recipe(recipe_id)
        updated = self.update_user_recipe(
            recipe_id, include_in_shopping_list=not recipe.include_in_shopping_list
        )
        return updated.include_in_shopping_list

    def save_imported_recipe(self, formatted: FormattedRecipe) -> UserRecipe:
        """
        Save an imported recipe into the cookbook.

        Requires a name, at least one named ingredient and at least one
        instruction. Amounts and times are converted from their text form.
        """
        problems = validate_formatted_recipe(formatted)
        if problems:
            raise RecipeValidationError(problems)

        ingredients = [
            RecipeIngredientLine(
                name=i.name.strip(),
                amount=parse_fraction_amount(i.amount),
                unit=(i.unit or '').strip(),
                preparation=i.preparation or None
            )
            for i in formatted.ingredients if (i.name or '').strip()
        ]
        steps = [step.strip() for step in formatted.instructions if (step or '').strip()]

        recipe = UserRecipe(
            id=0,
            name=formatted.name.strip(),
            description=formatted.description or '',
            ingredients=ingredients,
            instructions=[InstructionStep(step=n, text=text) for n, text in enumerate(steps, 1)],
            prep_time=_parse_int(formatted.prep_time, 0),
            cook_time=_parse_int(formatted.cook_time, 0),
            servings=_parse_int(formatted.servings, 1) or 1,
            cuisine=formatted.cuisine or '',
            category=formatted.category or ''
        )
        return self.add_user_recipe(recipe)


# Global collection service instance
_collection_service: Optional[CollectionService] = None


def get_collection_service() -> CollectionService:
    """Get singleton collection service instance"""
    global _collection_service
    if _collection_service is None:
        _collection_service = CollectionService()
    return _collection_service

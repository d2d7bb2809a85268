"""
Fridge management service for Fridge Cookbook.

Manages the ingredients the user owns (catalog and custom), the custom
ingredient list, and the shopping list derived from planned recipes.
"""

from datetime import datetime
from typing import List, Optional, Tuple, Union

from models import Ingredient, CustomIngredient, FridgeEntry, ShoppingListEntry
from services.ingredient_matcher import find_custom_ingredient
from services.storage_service import CookbookStorage, get_storage, next_id
from services.suggestion_service import build_shopping_list
from utils import get_logger, InFlightGuard

logger = get_logger(__name__)

OwnedIngredient = Union[Ingredient, CustomIngredient]


class PantryService:
    """
    Service for the user's fridge.

    Fridge entries have set semantics per (ingredient id, is custom): adding
    an owned ingredient or removing a missing one changes nothing.
    """

    def __init__(self, storage: Optional[CookbookStorage] = None,
                 guard: Optional[InFlightGuard] = None):
        self.storage = storage or get_storage()
        self.guard = guard or InFlightGuard()

    # Fridge contents

    def get_fridge(self) -> List[FridgeEntry]:
        return self.storage.get_fridge()

    def get_fridge_ingredients(self) -> List[OwnedIngredient]:
        """Resolve fridge entries to ingredients; entries that no longer resolve are skipped"""
        catalog = {i.id: i for i in self.storage.get_ingredients()}
        custom = {i.id: i for i in self.storage.get_custom_ingredients()}

        owned = []
        for entry in self.get_fridge():
            ingredient = custom.get(entry.ingredient_id) if entry.is_custom else catalog.get(entry.ingredient_id)
            if ingredient is not None:
                owned.append(ingredient)
            else:
                logger.debug(f"Fridge entry {entry.key} has no matching ingredient")
        return owned

    def is_in_fridge(self, ingredient_id: int, is_custom: bool = False) -> bool:
        return any(entry.key == (ingredient_id, is_custom) for entry in self.get_fridge())

    def add_to_fridge(self, ingredient_id: int, is_custom: bool = False,
                      notes: Optional[str] = None) -> bool:
        """Add an ingredient to the fridge. Returns False if it was already there."""
        fridge = self.get_fridge()
        if any(entry.key == (ingredient_id, is_custom) for entry in fridge):
            return False

        fridge.append(FridgeEntry(
            ingredient_id=ingredient_id,
            is_custom=is_custom,
            added_date=datetime.now().isoformat(),
            notes=notes
        ))
        self.storage.save_fridge(fridge)
        logger.info(f"Added {'custom ' if is_custom else ''}ingredient {ingredient_id} to fridge")
        return True

    def remove_from_fridge(self, ingredient_id: int, is_custom: bool = False) -> bool:
        """Remove an ingredient from the fridge. Returns False if it was not there."""
        fridge = self.get_fridge()
        remaining = [entry for entry in fridge if entry.key != (ingredient_id, is_custom)]
        if len(remaining) == len(fridge):
            return False

        self.storage.save_fridge(remaining)
        logger.info(f"Removed {'custom ' if is_custom else ''}ingredient {ingredient_id} from fridge")
        return True

    def add_custom_to_fridge(self, custom_id: int) -> bool:
        return self.add_to_fridge(custom_id, is_custom=True)

    def remove_custom_from_fridge(self, custom_id: int) -> bool:
        return self.remove_from_fridge(custom_id, is_custom=True)

    def toggle_fridge_item(self, ingredient_id: int, is_custom: bool = False) -> Optional[bool]:
        """
        Flip fridge membership of an ingredient.

        Returns the new membership, or None when a toggle for the same
        ingredient is still running and this request was dropped.
        """
        key = ('fridge', ingredient_id, is_custom)
        with self.guard.hold(key) as acquired:
            if not acquired:
                logger.debug(f"Toggle already in progress for {key}")
                return None

            if self.is_in_fridge(ingredient_id, is_custom):
                self.remove_from_fridge(ingredient_id, is_custom)
                return False
            self.add_to_fridge(ingredient_id, is_custom)
            return True

    # Custom ingredients

    def get_custom_ingredients(self) -> List[CustomIngredient]:
        return self.storage.get_custom_ingredients()

    def add_custom_ingredient(self, name: str, category: str = "custom",
                              unit: str = "", quantity: float = 1) -> CustomIngredient:
        """Create a custom ingredient with the next sequential id"""
        custom_ingredients = self.get_custom_ingredients()
        ingredient = CustomIngredient(
            id=next_id([i.id for i in custom_ingredients]),
            name=name.strip(),
            category=category or "custom",
            unit=unit,
            quantity=quantity
        )
        custom_ingredients.append(ingredient)
        self.storage.save_custom_ingredients(custom_ingredients)
        logger.info(f"Created custom ingredient '{ingredient.name}' ({ingredient.id})")
        return ingredient

    def delete_custom_ingredient(self, custom_id: int) -> bool:
        """Delete a custom ingredient and drop it from the fridge"""
        custom_ingredients = self.get_custom_ingredients()
        remaining = [i for i in custom_ingredients if i.id != custom_id]
        if len(remaining) == len(custom_ingredients):
            return False

        self.storage.save_custom_ingredients(remaining)
        self.remove_custom_from_fridge(custom_id)
        logger.info(f"Deleted custom ingredient {custom_id}")
        return True

    def find_or_create_custom_ingredient(self, name: str) -> Tuple[CustomIngredient, bool]:
        """
        Return the custom ingredient with this name, creating it if needed.

        The flag is True when a new ingredient was created.
        """
        existing = find_custom_ingredient(name, self.get_custom_ingredients())
        if existing is not None:
            return existing, False
        return self.add_custom_ingredient(name), True

    # Shopping list

    def get_shopping_list(self) -> List[ShoppingListEntry]:
        """
        Missing ingredients of every collection and cookbook recipe that is
        included in the shopping list, scaled by each recipe's multiplier.
        """
        catalog_recipes = {r.id: r for r in self.storage.get_recipes()}

        sources = []
        for entry in self.storage.get_collection():
            recipe = catalog_recipes.get(entry.recipe_id)
            if recipe is None:
                logger.debug(f"Collection entry {entry.recipe_id} has no catalog recipe")
                continue
            sources.append((recipe, entry.include_in_shopping_list, entry.effective_multiplier))

        for user_recipe in self.storage.get_user_recipes():
            sources.append((user_recipe.to_recipe(), user_recipe.include_in_shopping_list,
                            user_recipe.multiplier))

        return build_shopping_list(sources, self.get_fridge_ingredients())


# Global pantry service instance
_pantry_service: Optional[PantryService] = None


def get_pantry_service() -> PantryService:
    """Get singleton pantry service instance"""
    global _pantry_service
    if _pantry_service is None:
        _pantry_service = PantryService()
    return _pantry_service

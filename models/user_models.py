"""
User-owned association models for Fridge Cookbook.

Fridge and collection entries have set semantics: at most one entry per key.
Shopping list entries and suggestions are derived and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .recipe_models import Recipe


def _now() -> str:
    return datetime.now().isoformat()


@dataclass
class FridgeEntry:
    """
    Ingredient the user owns. Keyed by (ingredient_id, is_custom) since custom
    and catalog ids live in separate namespaces.
    """
    ingredient_id: int
    is_custom: bool = False
    added_date: str = field(default_factory=_now)
    notes: Optional[str] = None
    custom_quantity: Optional[float] = None

    @property
    def key(self) -> Tuple[int, bool]:
        return (self.ingredient_id, self.is_custom)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FridgeEntry':
        return cls(
            ingredient_id=int(data['ingredientId']),
            is_custom=bool(data.get('isCustom', False)),
            added_date=str(data.get('addedDate') or _now()),
            notes=data.get('notes'),
            custom_quantity=data.get('customQuantity')
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'ingredientId': self.ingredient_id,
            'addedDate': self.added_date,
        }
        if self.is_custom:
            data['isCustom'] = True
        if self.notes is not None:
            data['notes'] = self.notes
        if self.custom_quantity is not None:
            data['customQuantity'] = self.custom_quantity
        return data


@dataclass
class CollectionEntry:
    """Catalog recipe the user saved. Keyed by recipe_id."""
    recipe_id: int
    added_date: str = field(default_factory=_now)
    include_in_shopping_list: bool = True
    multiplier: Optional[float] = None
    notes: Optional[str] = None
    times_cooked: int = 0

    @property
    def effective_multiplier(self) -> float:
        return self.multiplier if self.multiplier else 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CollectionEntry':
        return cls(
            recipe_id=int(data['recipeId']),
            added_date=str(data.get('addedDate') or _now()),
            include_in_shopping_list=data.get('includeInShoppingList') is not False,
            multiplier=data.get('multiplier'),
            notes=data.get('notes'),
            times_cooked=int(data.get('timesCooked') or 0)
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'recipeId': self.recipe_id,
            'addedDate': self.added_date,
            'includeInShoppingList': self.include_in_shopping_list,
            'timesCooked': self.times_cooked,
        }
        if self.multiplier is not None:
            data['multiplier'] = self.multiplier
        if self.notes is not None:
            data['notes'] = self.notes
        return data


@dataclass
class ShoppingListEntry:
    """One line of the derived shopping list"""
    name: str
    amount: float
    unit: str
    recipes: List[str] = field(default_factory=list)

    def add_recipe(self, recipe_name: str):
        """Record another recipe that needs this ingredient"""
        if recipe_name not in self.recipes:
            self.recipes.append(recipe_name)


@dataclass
class RecipeSuggestion:
    """Ranked suggestion for a recipe not yet in the collection"""
    recipe: Recipe
    have_count: int
    missing_count: int
    key_match_count: int = 0

    @property
    def match_status(self) -> str:
        """Human readable match status"""
        if self.missing_count == 0:
            return "You have everything!"
        plural = "s" if self.missing_count > 1 else ""
        return f"Missing {self.missing_count} ingredient{plural}"

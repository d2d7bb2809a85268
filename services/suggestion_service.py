"""
Recipe suggestions and shopping list aggregation.

Finds catalog recipes worth adding to the collection based on what is in the
fridge, and builds the shopping list for recipes the user plans to cook.
Both are recomputed from scratch on every change; nothing here is cached.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from models import Ingredient, Recipe, RecipeIngredientLine, RecipeSuggestion, ShoppingListEntry
from services.ingredient_matcher import has_ingredient, is_spice_or_herb, is_key_ingredient
from services.unit_conversion import scale_amount
from utils import get_logger

logger = get_logger(__name__)

DEFAULT_SUGGESTION_LIMIT = 50

# (recipe, include_in_shopping_list, multiplier)
ShoppingSource = Tuple[Recipe, Optional[bool], Optional[float]]


class RankingStrategy(Enum):
    """How suggestions are ordered"""
    KEY_MATCH_FIRST = "key_match_first"  # key ingredients owned, then fewest missing
    MISSING_ONLY = "missing_only"        # fewest missing only

    def sort_key(self, suggestion: RecipeSuggestion):
        if self is RankingStrategy.MISSING_ONLY:
            return suggestion.missing_count
        return (-suggestion.key_match_count, suggestion.missing_count)


def score_recipe(recipe: Recipe, owned: Sequence, ingredient_catalog: Sequence[Ingredient],
                 spice_exclusion_ids: Optional[Set[int]] = None) -> RecipeSuggestion:
    """
    Count owned, missing and owned key ingredient lines of one recipe.

    Spices and herbs never count as missing; they are assumed to be in the
    pantry already.
    """
    have_count = 0
    missing_count = 0
    key_match_count = 0

    for line in recipe.ingredients:
        owned_line = has_ingredient(line.name, owned)
        if owned_line:
            have_count += 1
            if is_key_ingredient(line.name, ingredient_catalog):
                key_match_count += 1
        elif not is_spice_or_herb(line.name, ingredient_catalog, spice_exclusion_ids):
            missing_count += 1

    return RecipeSuggestion(
        recipe=recipe,
        have_count=have_count,
        missing_count=missing_count,
        key_match_count=key_match_count
    )


def compute_suggestions(catalog_recipes: Iterable[Recipe], collection_recipe_ids: Iterable[int],
                        owned: Sequence, ingredient_catalog: Sequence[Ingredient],
                        limit: int = DEFAULT_SUGGESTION_LIMIT,
                        strategy: RankingStrategy = RankingStrategy.KEY_MATCH_FIRST,
                        spice_exclusion_ids: Optional[Set[int]] = None) -> List[RecipeSuggestion]:
    """
    Rank catalog recipes the user has not collected yet.

    Args:
        catalog_recipes: All catalog recipes
        collection_recipe_ids: Ids already in the user's collection
        owned: Fridge contents, catalog and custom ingredients alike
        ingredient_catalog: Catalog used to classify spices and key ingredients
        limit: Maximum number of suggestions returned
        strategy: Ordering of the result

    Recipes sharing no ingredient with the fridge are never suggested. The
    sort is stable, so equally ranked recipes keep catalog order.
    """
    collected = set(collection_recipe_ids)
    suggestions = []

    for recipe in catalog_recipes:
        if recipe.id in collected:
            continue
        suggestion = score_recipe(recipe, owned, ingredient_catalog, spice_exclusion_ids)
        if suggestion.have_count > 0:
            suggestions.append(suggestion)

    suggestions.sort(key=strategy.sort_key)

    logger.debug(f"{len(suggestions)} suggestion candidates, returning up to {limit}")
    return suggestions[:max(limit, 0)]


def missing_ingredient_lines(recipe: Recipe, owned: Sequence) -> List[RecipeIngredientLine]:
    """Ingredient lines of a recipe that are not in the fridge"""
    return [line for line in recipe.ingredients if not has_ingredient(line.name, owned)]


def build_shopping_list(sources: Iterable[ShoppingSource], owned: Sequence) -> List[ShoppingListEntry]:
    """
    Aggregate missing ingredients across recipes into one shopping list.

    Sources flagged False for the shopping list are skipped (None counts as
    included). Entries are keyed by lowercased ingredient name; each entry
    lists every recipe that needs it. Repeated lines with the same unit add
    up, scaled by the recipe multiplier. The first unit seen for a name wins.
    """
    entries: Dict[str, ShoppingListEntry] = {}

    for recipe, include, multiplier in sources:
        if include is False:
            continue

        for line in missing_ingredient_lines(recipe, owned):
            key = line.name.lower()
            amount = scale_amount(line.amount, multiplier)

            entry = entries.get(key)
            if entry is None:
                entry = ShoppingListEntry(name=line.name, amount=amount, unit=line.unit)
                entries[key] = entry
            elif entry.unit == line.unit:
                entry.amount += amount

            entry.add_recipe(recipe.name)

    return list(entries.values())

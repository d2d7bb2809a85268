"""
Ingredient matching and classification.

Ingredient names arrive from catalog authors, AI extraction and OCR. Matching
is exact after trimming and lowercasing, against the name and then the
alternative names. No fuzzy or substring matching is attempted, so a match is
a pure function of the candidate names and aliases.
"""

from typing import Iterable, List, Optional, Sequence, Set, TypeVar

from models import Ingredient, CustomIngredient, NamedIngredient

T = TypeVar('T', bound=NamedIngredient)

SPICE_CATEGORIES = frozenset({'spices', 'herbs'})

# Catalog entries filed under spices/herbs that are not seasonings
# (334 "Salt Cod", 679 "Unsalted Pistachio").
DEFAULT_SPICE_EXCLUSION_IDS = frozenset({334, 679})

# Categories that anchor a dish, as opposed to seasonings
KEY_CATEGORIES = frozenset({'meat', 'seafood', 'produce', 'dairy', 'grains', 'grain', 'baking'})


def _normalize(name: str) -> str:
    return (name or '').lower().strip()


def _alternative_names(candidate: NamedIngredient) -> List[str]:
    return getattr(candidate, 'alternative_names', None) or []


def match_ingredient(search_name: str, candidates: Iterable[T]) -> Optional[T]:
    """
    Find the ingredient a name refers to.

    Each candidate is checked by name first, then by its alternative names.
    Returns the first matching candidate or None.
    """
    normalized = _normalize(search_name)
    for candidate in candidates:
        if candidate.name.lower() == normalized:
            return candidate
        if any(alt.lower() == normalized for alt in _alternative_names(candidate)):
            return candidate
    return None


def has_ingredient(search_name: str, candidates: Iterable[NamedIngredient]) -> bool:
    """True if the name matches any candidate by name or alias"""
    return match_ingredient(search_name, candidates) is not None


def find_builtin_ingredient(search_name: str, catalog: Iterable[Ingredient]) -> Optional[Ingredient]:
    """Look a name up in the ingredient catalog (aliases included)"""
    return match_ingredient(search_name, catalog)


def find_custom_ingredient(search_name: str,
                           custom_ingredients: Iterable[CustomIngredient]) -> Optional[CustomIngredient]:
    """Look a name up among custom ingredients. Custom ingredients have no aliases."""
    normalized = _normalize(search_name)
    for ingredient in custom_ingredients:
        if ingredient.name.lower() == normalized:
            return ingredient
    return None


def is_spice_or_herb(name: str, catalog: Sequence[Ingredient],
                     exclusion_ids: Optional[Set[int]] = None) -> bool:
    """
    True if the named catalog ingredient is a spice or herb.

    Ids in exclusion_ids are miscategorized catalog entries and never count.
    Defaults to DEFAULT_SPICE_EXCLUSION_IDS. Unmatched names are False.
    """
    ingredient = find_builtin_ingredient(name, catalog)
    if ingredient is None:
        return False
    if exclusion_ids is None:
        exclusion_ids = DEFAULT_SPICE_EXCLUSION_IDS
    if ingredient.id in exclusion_ids:
        return False
    return ingredient.category in SPICE_CATEGORIES


def is_key_ingredient(name: str, catalog: Sequence[Ingredient]) -> bool:
    """True if the named catalog ingredient belongs to a primary category"""
    ingredient = find_builtin_ingredient(name, catalog)
    if ingredient is None:
        return False
    return ingredient.category in KEY_CATEGORIES

"""
Data models for Fridge Cookbook.

Catalog and user recipe models, fridge/collection associations, and the
transient records produced by recipe import.
"""

from .recipe_models import (
    NamedIngredient, Ingredient, CustomIngredient, RecipeIngredientLine,
    InstructionStep, Recipe, UserRecipe
)
from .user_models import FridgeEntry, CollectionEntry, ShoppingListEntry, RecipeSuggestion
from .parsed_models import (
    UNTITLED_RECIPE, ParsedIngredient, ParsedRecipe, DietaryInfo, FormattedIngredient,
    FormattedRecipe, OCRResult, FormatResult, UrlFetchResult, ImportResult
)

__all__ = [
    'NamedIngredient',
    'Ingredient',
    'CustomIngredient',
    'RecipeIngredientLine',
    'InstructionStep',
    'Recipe',
    'UserRecipe',
    'FridgeEntry',
    'CollectionEntry',
    'ShoppingListEntry',
    'RecipeSuggestion',
    'UNTITLED_RECIPE',
    'ParsedIngredient',
    'ParsedRecipe',
    'DietaryInfo',
    'FormattedIngredient',
    'FormattedRecipe',
    'OCRResult',
    'FormatResult',
    'UrlFetchResult',
    'ImportResult'
]

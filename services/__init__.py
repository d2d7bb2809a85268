"""
Services package for Fridge Cookbook.

Pure core (unit normalization, ingredient matching, unit conversion, free-text
parsing, suggestions) plus the storage-backed fridge, collection and recipe
import services built on it.
"""

from .unit_normalizer import normalize_unit, parse_fraction_amount, normalize_unicode_fractions
from .ingredient_matcher import (
    match_ingredient, has_ingredient, find_builtin_ingredient, find_custom_ingredient,
    is_spice_or_herb, is_key_ingredient
)
from .unit_conversion import UnitSystem, ConvertedUnit, convert_unit, format_amount
from .recipe_parser import parse_recipe_text, parse_ingredient_line, convert_to_form_data
from .suggestion_service import RankingStrategy, compute_suggestions, build_shopping_list
from .storage_service import (
    KeyValueStore, InMemoryStore, SQLiteStore, CookbookStorage, get_storage
)
from .pantry_service import PantryService, get_pantry_service
from .collection_service import CollectionService, get_collection_service
from .url_fetcher import UrlFetcher, get_url_fetcher
from .ai_service import AIService, get_ai_service
from .import_service import RecipeImportService, get_import_service

__all__ = [
    'normalize_unit',
    'parse_fraction_amount',
    'normalize_unicode_fractions',
    'match_ingredient',
    'has_ingredient',
    'find_builtin_ingredient',
    'find_custom_ingredient',
    'is_spice_or_herb',
    'is_key_ingredient',
    'UnitSystem',
    'ConvertedUnit',
    'convert_unit',
    'format_amount',
    'parse_recipe_text',
    'parse_ingredient_line',
    'convert_to_form_data',
    'RankingStrategy',
    'compute_suggestions',
    'build_shopping_list',
    'KeyValueStore',
    'InMemoryStore',
    'SQLiteStore',
    'CookbookStorage',
    'get_storage',
    'PantryService',
    'get_pantry_service',
    'CollectionService',
    'get_collection_service',
    'UrlFetcher',
    'get_url_fetcher',
    'AIService',
    'get_ai_service',
    'RecipeImportService',
    'get_import_service'
]

"""
Key/value storage for Fridge Cookbook.

Everything is stored as JSON strings under a handful of fixed keys. The store
itself is pluggable: an in-memory dict for tests and throwaway sessions, or a
single-table SQLite file for persistence.
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

from models import (
    Ingredient, CustomIngredient, Recipe, UserRecipe, FridgeEntry, CollectionEntry
)
from services.unit_conversion import UnitSystem, get_unit_system, set_unit_system
from utils import get_logger, get_config, StorageError

logger = get_logger(__name__)

T = TypeVar('T')

STORAGE_KEYS = {
    'RECIPES': 'recipes',
    'INGREDIENTS': 'ingredients',
    'USER_FRIDGE': 'userFridge',
    'USER_COLLECTION': 'userCollection',
    'USER_RECIPES': 'userRecipes',
    'CUSTOM_INGREDIENTS': 'customIngredients',
    'UNIT_SYSTEM': 'unitSystem',
}

USER_LIST_KEYS = (
    STORAGE_KEYS['USER_FRIDGE'],
    STORAGE_KEYS['USER_COLLECTION'],
    STORAGE_KEYS['USER_RECIPES'],
    STORAGE_KEYS['CUSTOM_INGREDIENTS'],
)


class KeyValueStore(Protocol):
    """String key/value store. get returns None for missing keys."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str):
        ...

    def keys(self) -> List[str]:
        ...


class InMemoryStore:
    """Dict-backed store, lost when the process exits"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str):
        with self._lock:
            self._data[key] = value

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())


class SQLiteStore:
    """
    Single-table SQLite store.

    ":memory:" keeps one persistent connection, since every new connection
    to it would see an empty database.
    """

    def __init__(self, db_path: str = "fridge_cookbook.db"):
        self.db_path = db_path
        self._persistent_conn = None
        if db_path == ":memory:":
            self._persistent_conn = sqlite3.connect(db_path, check_same_thread=False)
        self._ensure_table()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections with proper cleanup"""
        if self._persistent_conn:
            try:
                yield self._persistent_conn
            except Exception as e:
                self._persistent_conn.rollback()
                logger.error(f"Database error: {e}")
                raise
        else:
            conn = None
            try:
                conn = sqlite3.connect(self.db_path)
                yield conn
            except Exception as e:
                if conn:
                    conn.rollback()
                logger.error(f"Database error: {e}")
                raise
            finally:
                if conn:
                    conn.close()

    def _ensure_table(self):
        with self.get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str):
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """, (key, value))
            conn.commit()

    def keys(self) -> List[str]:
        with self.get_connection() as conn:
            return [row[0] for row in conn.execute("SELECT key FROM kv_store ORDER BY key")]


class CookbookStorage:
    """
    Typed access to the stored lists.

    Reads never raise: a missing key, a store failure or malformed JSON all
    read as an empty list. Writes raise StorageError so callers never believe
    a change was saved when it was not.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else InMemoryStore()

    # Raw JSON access

    def get_json(self, key: str) -> Any:
        try:
            raw = self.store.get(key)
            return json.loads(raw) if raw else None
        except Exception as e:
            logger.error(f"Storage read error [{key}]: {e}")
            return None

    def set_json(self, key: str, value: Any):
        try:
            self.store.set(key, json.dumps(value))
        except Exception as e:
            logger.error(f"Storage write error [{key}]: {e}")
            raise StorageError(key, str(e)) from e

    def _load_list(self, key: str, factory: Callable[[Dict[str, Any]], T]) -> List[T]:
        data = self.get_json(key)
        if not isinstance(data, list):
            return []
        items = []
        for item in data:
            try:
                items.append(factory(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed entry in [{key}]: {e}")
        return items

    def _save_list(self, key: str, items: List[Any]):
        self.set_json(key, [item.to_dict() for item in items])

    # Catalog data

    def get_recipes(self) -> List[Recipe]:
        return self._load_list(STORAGE_KEYS['RECIPES'], Recipe.from_dict)

    def get_ingredients(self) -> List[Ingredient]:
        return self._load_list(STORAGE_KEYS['INGREDIENTS'], Ingredient.from_dict)

    def get_recipe_by_id(self, recipe_id: int) -> Optional[Recipe]:
        return next((r for r in self.get_recipes() if r.id == recipe_id), None)

    def get_ingredient_by_id(self, ingredient_id: int) -> Optional[Ingredient]:
        return next((i for i in self.get_ingredients() if i.id == ingredient_id), None)

    # User data

    def get_fridge(self) -> List[FridgeEntry]:
        return self._load_list(STORAGE_KEYS['USER_FRIDGE'], FridgeEntry.from_dict)

    def save_fridge(self, entries: List[FridgeEntry]):
        self._save_list(STORAGE_KEYS['USER_FRIDGE'], entries)

    def get_collection(self) -> List[CollectionEntry]:
        return self._load_list(STORAGE_KEYS['USER_COLLECTION'], CollectionEntry.from_dict)

    def save_collection(self, entries: List[CollectionEntry]):
        self._save_list(STORAGE_KEYS['USER_COLLECTION'], entries)

    def get_user_recipes(self) -> List[UserRecipe]:
        return self._load_list(STORAGE_KEYS['USER_RECIPES'], UserRecipe.from_dict)

    def save_user_recipes(self, recipes: List[UserRecipe]):
        self._save_list(STORAGE_KEYS['USER_RECIPES'], recipes)

    def get_custom_ingredients(self) -> List[CustomIngredient]:
        return self._load_list(STORAGE_KEYS['CUSTOM_INGREDIENTS'], CustomIngredient.from_dict)

    def save_custom_ingredients(self, ingredients: List[CustomIngredient]):
        self._save_list(STORAGE_KEYS['CUSTOM_INGREDIENTS'], ingredients)

    # Settings

    def get_unit_system(self) -> UnitSystem:
        return get_unit_system(self.store)

    def set_unit_system(self, system) -> UnitSystem:
        try:
            return set_unit_system(self.store, system)
        except Exception as e:
            logger.error(f"Storage write error [{STORAGE_KEYS['UNIT_SYSTEM']}]: {e}")
            raise StorageError(STORAGE_KEYS['UNIT_SYSTEM'], str(e)) from e

    def initialize(self, recipes: Optional[List[Recipe]] = None,
                   ingredients: Optional[List[Ingredient]] = None):
        """
        Seed catalog data and create empty user lists that do not exist yet.

        Catalog lists passed in replace what is stored; existing user data is
        left untouched.
        """
        if recipes is not None:
            self._save_list(STORAGE_KEYS['RECIPES'], recipes)
        if ingredients is not None:
            self._save_list(STORAGE_KEYS['INGREDIENTS'], ingredients)

        existing = set(self.store.keys())
        for key in USER_LIST_KEYS:
            if key not in existing:
                self.set_json(key, [])

        logger.info(
            f"Storage initialized ({len(recipes or [])} recipes, {len(ingredients or [])} ingredients seeded)"
        )


def next_id(ids: List[int]) -> int:
    """Next sequential id: one past the highest, or 1 for an empty list"""
    return max(ids) + 1 if ids else 1


# Global storage instance
_storage: Optional[CookbookStorage] = None


def get_storage() -> CookbookStorage:
    """Get singleton storage backed by the configured SQLite file"""
    global _storage
    if _storage is None:
        config = get_config()
        config.ensure_directories()
        _storage = CookbookStorage(SQLiteStore(config.storage_path))
    return _storage


def create_storage_for_testing() -> CookbookStorage:
    """Create storage backed by an in-memory store"""
    return CookbookStorage(InMemoryStore())

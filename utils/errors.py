"""
Exception types for Fridge Cookbook.

Matching, parsing and ranking never raise for bad input. These are for the
integration layer: storage failures, missing records and bad configuration.
"""


class CookbookError(Exception):
    """Base class for all Fridge Cookbook errors"""


class StorageError(CookbookError):
    """Raised when the key/value store cannot be written"""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Storage write error [{key}]: {message}")


class RecipeNotFoundError(CookbookError):
    """Raised when a recipe id does not resolve to a stored recipe"""

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe {recipe_id} not found")


class ConfigurationError(CookbookError):
    """Raised when a required setting is missing or invalid"""


class RecipeValidationError(CookbookError):
    """Raised when a recipe is missing its name, ingredients or instructions"""

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("Invalid recipe: " + "; ".join(self.problems))

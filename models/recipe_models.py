"""
Recipe and ingredient data models for Fridge Cookbook.

Catalog data (Ingredient, Recipe) is read-only; CustomIngredient and
UserRecipe are owned by the user. All models round-trip through plain dicts
using the camelCase keys of the stored JSON.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol


class NamedIngredient(Protocol):
    """
    Anything the ingredient matcher can match against.

    Catalog ingredients carry alternative names; custom ingredients only a name.
    """
    name: str


def _as_float(value: Any) -> float:
    try:
        return float(value) if value not in (None, '') else 0.0
    except (TypeError, ValueError):
        return 0.0


@dataclass
class Ingredient:
    """Catalog ingredient. Identity is the catalog id."""
    id: int
    name: str
    category: str
    unit: str = ""
    quantity: float = 1
    alternative_names: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Ensure alternative_names is a list"""
        if self.alternative_names is None:
            self.alternative_names = []
        elif isinstance(self.alternative_names, str):
            self.alternative_names = [n.strip() for n in self.alternative_names.split(',') if n.strip()]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Ingredient':
        return cls(
            id=int(data['id']),
            name=str(data.get('name', '')),
            category=str(data.get('category', '')),
            unit=str(data.get('unit') or ''),
            quantity=_as_float(data.get('quantity', 1)),
            alternative_names=list(data.get('alternativeNames') or [])
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'unit': self.unit,
            'quantity': self.quantity,
        }
        if self.alternative_names:
            data['alternativeNames'] = list(self.alternative_names)
        return data


@dataclass
class CustomIngredient:
    """
    User-defined ingredient. Ids are sequential in their own namespace and
    may collide numerically with catalog ids.
    """
    id: int
    name: str
    category: str = "custom"
    unit: str = ""
    quantity: float = 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomIngredient':
        return cls(
            id=int(data['id']),
            name=str(data.get('name', '')),
            category=str(data.get('category') or 'custom'),
            unit=str(data.get('unit') or ''),
            quantity=_as_float(data.get('quantity', 1))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'unit': self.unit,
            'quantity': self.quantity,
        }


@dataclass
class RecipeIngredientLine:
    """One ingredient line inside a recipe. An amount of 0 means to taste."""
    name: str
    amount: float = 0.0
    unit: str = ""
    preparation: Optional[str] = None
    optional: bool = False

    def __post_init__(self):
        self.amount = max(_as_float(self.amount), 0.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecipeIngredientLine':
        return cls(
            name=str(data.get('name', '')),
            amount=data.get('amount', 0),
            unit=str(data.get('unit') or ''),
            preparation=data.get('preparation'),
            optional=bool(data.get('optional', False))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'amount': self.amount,
            'unit': self.unit,
            'preparation': self.preparation,
            'optional': self.optional,
        }


@dataclass
class InstructionStep:
    step: int
    text: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InstructionStep':
        return cls(step=int(data.get('step', 0)), text=str(data.get('text', '')))

    def to_dict(self) -> Dict[str, Any]:
        return {'step': self.step, 'text': self.text}


def _steps_from_texts(texts: List[str]) -> List[InstructionStep]:
    return [InstructionStep(step=i + 1, text=text) for i, text in enumerate(texts)]


@dataclass
class Recipe:
    """
    Catalog recipe. Immutable reference data shared by every user.
    """
    id: int
    name: str
    description: str = ""
    cuisine: str = ""
    category: str = ""
    difficulty: str = "easy"
    servings: int = 1
    prep_time: int = 0
    cook_time: int = 0
    ingredients: List[RecipeIngredientLine] = field(default_factory=list)
    instructions: List[InstructionStep] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    @property
    def total_time(self) -> int:
        return self.prep_time + self.cook_time

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Recipe':
        return cls(
            id=int(data['id']),
            name=str(data.get('name', '')),
            description=str(data.get('description') or ''),
            cuisine=str(data.get('cuisine') or ''),
            category=str(data.get('category') or ''),
            difficulty=str(data.get('difficulty') or 'easy'),
            servings=int(data.get('servings') or 1),
            prep_time=int(data.get('prepTime') or 0),
            cook_time=int(data.get('cookTime') or 0),
            ingredients=[RecipeIngredientLine.from_dict(i) for i in data.get('ingredients') or []],
            instructions=[InstructionStep.from_dict(s) for s in data.get('instructions') or []],
            tags=list(data.get('tags') or [])
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'cuisine': self.cuisine,
            'category': self.category,
            'difficulty': self.difficulty,
            'servings': self.servings,
            'prepTime': self.prep_time,
            'cookTime': self.cook_time,
            'totalTime': self.total_time,
            'ingredients': [i.to_dict() for i in self.ingredients],
            'instructions': [s.to_dict() for s in self.instructions],
            'tags': list(self.tags),
        }


@dataclass
class UserRecipe:
    """
    Recipe authored by the user ("cookbook"). Same ingredient and instruction
    shape as a catalog recipe, plus serving multiplier and shopping list flag.
    """
    id: int
    name: str
    description: str = ""
    ingredients: List[RecipeIngredientLine] = field(default_factory=list)
    instructions: List[InstructionStep] = field(default_factory=list)
    prep_time: int = 0
    cook_time: int = 0
    servings: int = 1
    cuisine: str = ""
    category: str = ""
    added_date: str = field(default_factory=lambda: datetime.now().isoformat())
    include_in_shopping_list: bool = True
    multiplier: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserRecipe':
        instructions = data.get('instructions') or []
        if instructions and isinstance(instructions[0], str):
            steps = _steps_from_texts(instructions)
        else:
            steps = [InstructionStep.from_dict(s) for s in instructions]
        return cls(
            id=int(data['id']),
            name=str(data.get('name', '')),
            description=str(data.get('description') or ''),
            ingredients=[RecipeIngredientLine.from_dict(i) for i in data.get('ingredients') or []],
            instructions=steps,
            prep_time=int(data.get('prepTime') or 0),
            cook_time=int(data.get('cookTime') or 0),
            servings=int(data.get('servings') or 1),
            cuisine=str(data.get('cuisine') or ''),
            category=str(data.get('category') or ''),
            added_date=str(data.get('addedDate') or datetime.now().isoformat()),
            include_in_shopping_list=data.get('includeInShoppingList') is not False,
            multiplier=_as_float(data.get('multiplier')) or 1.0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'ingredients': [i.to_dict() for i in self.ingredients],
            'instructions': [s.to_dict() for s in self.instructions],
            'prepTime': self.prep_time,
            'cookTime': self.cook_time,
            'servings': self.servings,
            'cuisine': self.cuisine,
            'category': self.category,
            'addedDate': self.added_date,
            'includeInShoppingList': self.include_in_shopping_list,
            'multiplier': self.multiplier,
        }

    def to_recipe(self) -> Recipe:
        """View the user recipe as a catalog-shaped Recipe"""
        return Recipe(
            id=self.id,
            name=self.name,
            description=self.description,
            cuisine=self.cuisine or 'Custom',
            category=self.category or 'other',
            difficulty='easy',
            servings=self.servings or 1,
            prep_time=self.prep_time,
            cook_time=self.cook_time,
            ingredients=[
                RecipeIngredientLine(name=i.name, amount=i.amount, unit=i.unit)
                for i in self.ingredients
            ],
            instructions=list(self.instructions)
        )

"""
Models for recipe import: OCR text, URL content, AI extraction and the local
free-text parser.

Parsed records are transient. They are created per import, handed to the
caller for form pre-fill and never stored in this form.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


UNTITLED_RECIPE = "Untitled Recipe"


@dataclass
class ParsedIngredient:
    """Ingredient line as found in text. Amount stays a raw string here."""
    amount: str
    unit: str
    name: str

    def has_amount(self) -> bool:
        return bool(self.amount)


@dataclass
class ParsedRecipe:
    """
    Output of the free-text recipe parser.

    confidence is an advisory 0..1 quality estimate, not an error signal.
    """
    name: str = ""
    description: str = ""
    ingredients: List[ParsedIngredient] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    prep_time: str = ""
    cook_time: str = ""
    servings: str = ""
    cuisine: str = ""
    category: str = ""
    confidence: float = 0.0

    def has_metadata(self) -> bool:
        return bool(self.prep_time or self.cook_time or self.servings)


@dataclass
class DietaryInfo:
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False


@dataclass
class FormattedIngredient:
    """Ingredient as produced by AI extraction"""
    name: str
    amount: str = ""
    unit: str = ""
    preparation: str = ""
    alternatives: List[str] = field(default_factory=list)

    def has_alternatives(self) -> bool:
        return len(self.alternatives) > 0


@dataclass
class FormattedRecipe:
    """
    Structured recipe from AI extraction. The local parser can produce the
    same shape so callers treat both sources alike.
    """
    name: str = UNTITLED_RECIPE
    description: str = ""
    ingredients: List[FormattedIngredient] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    prep_time: str = ""
    cook_time: str = ""
    servings: str = ""
    cuisine: str = ""
    category: str = ""
    meal_type: str = ""
    difficulty: str = "medium"
    tags: List[str] = field(default_factory=list)
    dietary_info: DietaryInfo = field(default_factory=DietaryInfo)

    def ingredients_with_alternatives(self) -> List[int]:
        """Indexes of ingredients that offer alternatives to choose from"""
        return [i for i, ing in enumerate(self.ingredients) if ing.has_alternatives()]

    def apply_alternative_choices(self, choices: Dict[int, str]):
        """Replace ingredient names with the alternatives the user picked"""
        for index, chosen_name in choices.items():
            if 0 <= index < len(self.ingredients) and chosen_name:
                self.ingredients[index].name = chosen_name


@dataclass
class OCRResult:
    """Result of the external OCR collaborator"""
    success: bool
    raw_text: str = ""
    error: Optional[str] = None


@dataclass
class FormatResult:
    """Result of the AI extraction collaborator"""
    success: bool
    recipe: Optional[FormattedRecipe] = None
    error: Optional[str] = None


@dataclass
class UrlFetchResult:
    """Result of fetching and flattening a recipe web page"""
    success: bool
    text: str = ""
    title: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ImportResult:
    """
    Result of a recipe import. source is 'ai' or 'parser'; confidence is only
    meaningful for the parser.
    """
    success: bool
    recipe: Optional[FormattedRecipe] = None
    source: str = ""
    confidence: Optional[float] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, warning: str):
        self.warnings.append(warning)

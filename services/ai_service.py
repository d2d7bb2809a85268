"""
AI recipe extraction service for Fridge Cookbook.

Sends OCR or web page text to an OpenAI-compatible chat completions endpoint
(LM Studio by default) and normalizes the JSON reply into a FormattedRecipe.
Every failure is returned as a FormatResult with an error message so callers
can fall back to the local parser.
"""

import json
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from models import UNTITLED_RECIPE, DietaryInfo, FormattedIngredient, FormattedRecipe, FormatResult
from utils import get_logger, get_config

logger = get_logger(__name__)


NOT_CONFIGURED_ERROR = 'AI extraction not configured. Set FRIDGE_AI_BASE_URL and FRIDGE_AI_ENABLED.'
PARSE_ERROR = 'Failed to parse recipe structure from AI response.'

# Errors a retry cannot fix
NON_RETRYABLE_ERRORS = ('not configured', 'access denied', 'may not be available')

_JSON_SHAPE = """{
  "name": "Recipe Name",
  "description": "Brief 1-2 sentence description of the dish",
  "ingredients": [
    { "name": "Chicken Breast", "amount": "2", "unit": "whole", "preparation": "diced" },
    { "name": "Vegetable Oil", "amount": "2", "unit": "tbsp", "preparation": "", "alternatives": ["Sunflower Oil"] },
    { "name": "Salt", "amount": "1", "unit": "to taste", "preparation": "" }
  ],
  "instructions": [
    "Preheat the oven to 180C (350F).",
    "Season the chicken with salt and pepper."
  ],
  "prepTime": "15",
  "cookTime": "30",
  "servings": "4",
  "cuisine": "Italian",
  "category": "dinner",
  "mealType": "Chicken",
  "difficulty": "medium",
  "tags": ["baked", "quick", "high-protein"],
  "dietaryInfo": { "vegetarian": false, "vegan": false, "glutenFree": true, "dairyFree": true }
}"""

_RULES = """INGREDIENT RULES:
- "name": the ingredient only, in Title Case. No preparation words, amounts or units in the name.
- "amount": a string number ("1", "0.5", "2"). Convert fractions: 1/2 = "0.5", 1/4 = "0.25", 3/4 = "0.75", 1/3 = "0.33".
- "unit": use only g, tsp, tbsp, cup, ml, slice, clove, whole, pinch, dash, handful, bunch, can, sprig, head, stalk, to taste, to serve, for frying, for greasing. Use "whole" when counting items.
- "preparation": how the ingredient is prepared ("diced", "minced", "melted"), or "".
- Keep every ingredient line as a separate entry. Do not deduplicate or combine.
- Split compound ingredients like "salt and pepper" into separate entries.
- For "X or Y" use X as the name and list the others in "alternatives" as full Title Case names. Omit "alternatives" when there are none.

INSTRUCTION RULES:
- Short single-action steps of 100-250 characters. Split long paragraphs.
- Do not prefix steps with "Step 1:" or "1.".

METADATA RULES:
- Times: minutes only, as a string ("15"). Servings: the number as a string.
- category: one of breakfast, dinner, dessert, side, starter.
- mealType: one of Beef, Chicken, Lamb, Pork, Seafood, Vegetarian, Vegan, Pasta, Dessert, Side, Breakfast, Starter, Goat, Miscellaneous.
- difficulty: one of easy, medium, hard.
- dietaryInfo: derive the flags from the ingredients.
- Missing information: empty string, empty array or false."""

PROMPTS = {
    'ocr': (
        "You are a recipe parser for a cooking app. Extract structured recipe data from the following OCR text.\n\n"
        "Return ONLY a valid JSON object with this exact structure (no markdown, no explanation, just the JSON):\n"
        f"{_JSON_SHAPE}\n\n{_RULES}\n"
        "- Clean up any OCR artifacts or typos.\n\n"
        "OCR Text:\n"
    ),
    'url': (
        "You are a recipe parser for a cooking app. Extract structured recipe data from the following web page content.\n\n"
        "Return ONLY a valid JSON object with this exact structure (no markdown, no explanation, just the JSON):\n"
        f"{_JSON_SHAPE}\n\n{_RULES}\n"
        "- Ignore ads, navigation, comments and other non-recipe content.\n\n"
        "Web Page Content:\n"
    ),
}


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) from a reply"""
    text = (content or '').strip()
    if text.startswith('```json'):
        text = text[7:]
    elif text.startswith('```'):
        text = text[3:]
    if text.endswith('```'):
        text = text[:-3]
    return text.strip()


def _string(value: Any, default: str = '') -> str:
    return str(value) if value not in (None, '', 0, False) else default


def _string_list(value: Any) -> List[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


def normalize_recipe_payload(data: Dict[str, Any]) -> FormattedRecipe:
    """Coerce the model's JSON into a FormattedRecipe, filling defaults for missing fields"""
    ingredients = []
    for item in data.get('ingredients') if isinstance(data.get('ingredients'), list) else []:
        if not isinstance(item, dict):
            continue
        ingredients.append(FormattedIngredient(
            name=_string(item.get('name')),
            amount=_string(item.get('amount')),
            unit=_string(item.get('unit')),
            preparation=_string(item.get('preparation')),
            alternatives=_string_list(item.get('alternatives'))
        ))

    dietary = data.get('dietaryInfo') if isinstance(data.get('dietaryInfo'), dict) else {}

    return FormattedRecipe(
        name=_string(data.get('name'), UNTITLED_RECIPE),
        description=_string(data.get('description')),
        ingredients=ingredients,
        instructions=_string_list(data.get('instructions')),
        prep_time=_string(data.get('prepTime')),
        cook_time=_string(data.get('cookTime')),
        servings=_string(data.get('servings')),
        cuisine=_string(data.get('cuisine')),
        category=_string(data.get('category')),
        meal_type=_string(data.get('mealType')),
        difficulty=_string(data.get('difficulty'), 'medium'),
        tags=_string_list(data.get('tags')),
        dietary_info=DietaryInfo(
            vegetarian=bool(dietary.get('vegetarian')),
            vegan=bool(dietary.get('vegan')),
            gluten_free=bool(dietary.get('glutenFree')),
            dairy_free=bool(dietary.get('dairyFree'))
        )
    )


class AIService:
    """
    AI recipe extraction over an OpenAI-compatible API.

    Works with a local LM Studio server out of the box; any compatible
    endpoint can be configured with a base URL, model and API key.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.config = get_config()
        self.session = session or requests.Session()

        # Track AI availability status
        self._ai_available = None
        self._last_health_check = None
        self._health_check_interval = 300  # 5 minutes

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        if self.config.ai_api_key:
            headers['Authorization'] = f"Bearer {self.config.ai_api_key}"
        return headers

    def is_ai_available(self, force_check: bool = False) -> bool:
        """
        Check if the AI endpoint is configured and responding.

        Args:
            force_check: Force a new health check even if cached result exists
        """
        if not self.config.is_ai_configured():
            return False

        now = datetime.now()
        if (not force_check and self._ai_available is not None and
                self._last_health_check and
                (now - self._last_health_check).seconds < self._health_check_interval):
            return self._ai_available

        try:
            response = self.session.get(
                f"{self.config.ai_base_url.rstrip('/')}/models",
                timeout=5,
                headers=self._headers()
            )
            self._ai_available = response.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.debug(f"AI health check failed: {e}")
            self._ai_available = False

        self._last_health_check = now
        if not self._ai_available:
            logger.warning("AI service unavailable")
        return self._ai_available

    def format_recipe(self, text: str, source: str = 'ocr') -> FormatResult:
        """
        Extract a structured recipe from OCR or web page text.

        Args:
            text: Raw recipe text
            source: 'ocr' or 'url', selects the prompt

        Returns:
            FormatResult with the recipe, or the reason extraction failed
        """
        if not self.config.is_ai_configured():
            return FormatResult(success=False, error=NOT_CONFIGURED_ERROR)

        if not text or not text.strip():
            empty_error = 'No content provided to parse.' if source == 'url' else 'No text provided to format.'
            return FormatResult(success=False, error=empty_error)

        prompt = PROMPTS.get(source, PROMPTS['ocr']) + text
        payload = {
            "model": self.config.ai_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.config.ai_max_tokens,
            "temperature": 0.1,
            "stream": False
        }

        try:
            response = self.session.post(
                f"{self.config.ai_base_url.rstrip('/')}/chat/completions",
                json=payload,
                timeout=self.config.ai_timeout_seconds,
                headers=self._headers()
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"AI API call failed: {e}")
            return FormatResult(success=False, error=f"Recipe formatting failed: {e}")

        if response.status_code != 200:
            logger.warning(f"AI API returned status {response.status_code}")
            return FormatResult(success=False, error=self._status_error(response))

        try:
            body = response.json()
            content = body.get('choices', [{}])[0].get('message', {}).get('content', '')
        except (ValueError, AttributeError, IndexError) as e:
            logger.error(f"Unexpected AI response body: {e}")
            return FormatResult(success=False, error='No response from AI service.')

        if not content:
            return FormatResult(success=False, error='No response from AI service.')

        try:
            data = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            logger.warning(f"AI reply is not valid JSON: {e}")
            return FormatResult(success=False, error=PARSE_ERROR)

        if not isinstance(data, dict):
            return FormatResult(success=False, error=PARSE_ERROR)

        recipe = normalize_recipe_payload(data)
        logger.info(f"AI extracted '{recipe.name}' with {len(recipe.ingredients)} ingredients")
        return FormatResult(success=True, recipe=recipe)

    @staticmethod
    def _status_error(response: requests.Response) -> str:
        if response.status_code == 403:
            return 'AI access denied. Please check your API key and model permissions.'
        if response.status_code == 429:
            return 'Too many requests. Please wait a moment and try again.'
        if response.status_code == 400:
            return 'Invalid request to the AI service. The model may not be available.'
        return f"AI API error ({response.status_code}): {response.text}"

    def format_recipe_with_retry(self, text: str, source: str = 'ocr',
                                 max_retries: Optional[int] = None,
                                 retry_delay_seconds: float = 1.0) -> FormatResult:
        """Format with retries; configuration and permission errors are returned at once"""
        attempts = max_retries if max_retries is not None else self.config.ai_max_retries
        last_result: Optional[FormatResult] = None

        for attempt in range(attempts):
            result = self.format_recipe(text, source)
            if result.success:
                return result
            if result.error and any(marker in result.error for marker in NON_RETRYABLE_ERRORS):
                return result

            last_result = result
            if attempt < attempts - 1:
                time.sleep(retry_delay_seconds)

        return last_result or FormatResult(
            success=False, error='Recipe formatting failed after multiple attempts.'
        )


def get_ai_service() -> AIService:
    """Factory function to get AI service instance"""
    return AIService()

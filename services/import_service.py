"""
Recipe import service for Fridge Cookbook.

Imports recipes from OCR text, pasted text or web pages. AI extraction is
tried first when it is configured and its endpoint answers; the local
free-text parser is the fallback and the only path when AI is disabled. Both
produce a FormattedRecipe.
"""

from typing import Optional

from models import UNTITLED_RECIPE, ImportResult, OCRResult
from services.ai_service import AIService
from services.recipe_parser import parse_recipe_text, to_formatted_recipe
from services.url_fetcher import UrlFetcher
from utils import get_config, get_logger, log_operation

logger = get_logger(__name__)

# Parser results below this confidence are flagged for review
LOW_CONFIDENCE_THRESHOLD = 0.5


class RecipeImportService:
    """
    Turns recipe text from any source into a FormattedRecipe.

    Never raises for bad input; failures come back as ImportResult.error and
    recoverable problems as warnings.
    """

    def __init__(self, ai_service: Optional[AIService] = None,
                 url_fetcher: Optional[UrlFetcher] = None):
        self.config = get_config()
        self.ai = ai_service or AIService()
        self.fetcher = url_fetcher or UrlFetcher()

    def import_text(self, text: str, source: str = 'ocr') -> ImportResult:
        """
        Import a recipe from raw text.

        Args:
            text: OCR output or text extracted from a page
            source: 'ocr' or 'url', selects the AI prompt
        """
        if not text or not text.strip():
            return ImportResult(success=False, error='No text provided to import.')

        with log_operation(logger, f"Import recipe from {source} text") as op:
            warnings = []

            if self.config.is_ai_configured():
                if self.ai.is_ai_available():
                    ai_result = self.ai.format_recipe_with_retry(text, source)
                    if ai_result.success and ai_result.recipe:
                        op.info(f"AI extracted '{ai_result.recipe.name}'")
                        return ImportResult(success=True, recipe=ai_result.recipe, source='ai')
                    warnings.append(f"AI extraction failed ({ai_result.error}); used the basic parser instead.")
                    op.warning(f"AI extraction failed: {ai_result.error}")
                else:
                    warnings.append("AI service is unavailable; used the basic parser instead.")
                    op.warning("AI service unavailable, using the basic parser")

            parsed = parse_recipe_text(text)
            if not parsed.ingredients and not parsed.instructions:
                return ImportResult(
                    success=False,
                    source='parser',
                    confidence=parsed.confidence,
                    error='Could not find a recipe in this text.',
                    warnings=warnings
                )

            result = ImportResult(
                success=True,
                recipe=to_formatted_recipe(parsed),
                source='parser',
                confidence=parsed.confidence,
                warnings=warnings
            )
            if parsed.confidence < LOW_CONFIDENCE_THRESHOLD:
                result.add_warning('Low confidence parse. Please review the recipe before saving.')

            op.info(f"Parser found {len(parsed.ingredients)} ingredients, confidence {parsed.confidence:.2f}")
            return result

    def import_ocr(self, ocr_result: OCRResult) -> ImportResult:
        """Import from an OCR collaborator result"""
        if not ocr_result.success:
            return ImportResult(success=False, error=ocr_result.error or 'Text recognition failed.')
        return self.import_text(ocr_result.raw_text, source='ocr')

    def import_url(self, url: str) -> ImportResult:
        """
        Import a recipe from a web page.

        When the recipe comes back untitled, the page title is used instead.
        """
        fetched = self.fetcher.fetch_url_with_retry(url)
        if not fetched.success:
            return ImportResult(success=False, error=fetched.error)

        result = self.import_text(fetched.text, source='url')
        if result.success and result.recipe.name == UNTITLED_RECIPE and fetched.title:
            result.recipe.name = fetched.title
        return result


def get_import_service() -> RecipeImportService:
    """Factory function to get recipe import service instance"""
    return RecipeImportService()

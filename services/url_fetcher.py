"""
Recipe web page fetching for Fridge Cookbook.

Downloads a page and flattens it to text for recipe extraction. Pages that
publish schema.org Recipe data as JSON-LD are rendered from that data with
INGREDIENTS/INSTRUCTIONS headers; other pages fall back to their visible
text.
"""

import json
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup, Comment

from models import UrlFetchResult
from utils import get_config, get_logger

logger = get_logger(__name__)

MIN_TEXT_LENGTH = 100
TRUNCATION_MARKER = "\n\n[Content truncated...]"

BLOCK_TAGS = ['p', 'div', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'tr']

# Errors caused by the request itself; retrying cannot fix them
NON_RETRYABLE_ERRORS = ('Invalid URL', 'Please enter', 'not found', 'Access denied')

_DURATION = re.compile(r'PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?', re.IGNORECASE)


def format_duration(duration: Any) -> Any:
    """Render an ISO 8601 duration ("PT1H30M") as total minutes ("90 minutes"); anything else is returned as is"""
    if not duration or not isinstance(duration, str):
        return duration

    match = _DURATION.search(duration)
    if match:
        minutes = int(match.group(1) or 0) * 60 + int(match.group(2) or 0)
        if minutes > 0:
            return f"{minutes} minutes"

    return duration


def _is_recipe_type(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    schema_type = schema.get('@type')
    if isinstance(schema_type, list):
        return 'Recipe' in schema_type
    return schema_type == 'Recipe'


def _joined(value: Any) -> str:
    return ', '.join(str(v) for v in value) if isinstance(value, list) else str(value)


def _step_text(step: Any) -> str:
    if isinstance(step, str):
        return step
    if isinstance(step, dict):
        return step.get('text') or step.get('name') or ''
    return str(step)


def format_json_ld_recipe(recipe: Dict[str, Any]) -> str:
    """Render schema.org Recipe data as plain text with section headers"""
    parts = []

    if recipe.get('name'):
        parts.append(f"Recipe: {recipe['name']}")
    if recipe.get('description'):
        parts.append(f"Description: {recipe['description']}")
    if recipe.get('prepTime'):
        parts.append(f"Prep Time: {format_duration(recipe['prepTime'])}")
    if recipe.get('cookTime'):
        parts.append(f"Cook Time: {format_duration(recipe['cookTime'])}")
    if recipe.get('totalTime'):
        parts.append(f"Total Time: {format_duration(recipe['totalTime'])}")
    if recipe.get('recipeYield'):
        recipe_yield = recipe['recipeYield']
        if isinstance(recipe_yield, list):
            recipe_yield = recipe_yield[0] if recipe_yield else ''
        parts.append(f"Servings: {recipe_yield}")
    if recipe.get('recipeCategory'):
        parts.append(f"Category: {_joined(recipe['recipeCategory'])}")
    if recipe.get('recipeCuisine'):
        parts.append(f"Cuisine: {_joined(recipe['recipeCuisine'])}")

    parts.append('')
    parts.append('INGREDIENTS:')
    ingredients = recipe.get('recipeIngredient')
    if isinstance(ingredients, list):
        parts.extend(f"- {ingredient}" for ingredient in ingredients)

    parts.append('')
    parts.append('INSTRUCTIONS:')
    instructions = recipe.get('recipeInstructions') or []
    if not isinstance(instructions, list):
        instructions = [instructions]

    step_number = 1
    for instruction in instructions:
        if isinstance(instruction, dict) and instruction.get('@type') == 'HowToSection':
            if instruction.get('name'):
                parts.append(f"\n{instruction['name']}:")
            for step in instruction.get('itemListElement') or []:
                parts.append(f"{step_number}. {_step_text(step)}")
                step_number += 1
        elif isinstance(instruction, str) or (
                isinstance(instruction, dict) and instruction.get('@type') == 'HowToStep'):
            parts.append(f"{step_number}. {_step_text(instruction)}")
            step_number += 1

    return '\n'.join(parts)


def extract_json_ld_recipe(soup: BeautifulSoup) -> Optional[str]:
    """Find the first schema.org Recipe in the page's JSON-LD blocks, rendered as text"""
    for script in soup.find_all('script', type='application/ld+json'):
        try:
            data = json.loads(script.string or script.get_text() or '')
        except (json.JSONDecodeError, TypeError):
            continue

        schemas = data if isinstance(data, list) else [data]
        for schema in schemas:
            if _is_recipe_type(schema):
                return format_json_ld_recipe(schema)
            if isinstance(schema, dict):
                for item in schema.get('@graph') or []:
                    if _is_recipe_type(item):
                        return format_json_ld_recipe(item)

    return None


def html_to_text(soup: BeautifulSoup) -> str:
    """Visible page text with one line per block element and "- " before list items"""
    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in soup.find_all(['br', 'hr']):
        tag.replace_with('\n')
    for tag in soup.find_all('li'):
        tag.insert(0, '- ')
    for tag in soup.find_all(BLOCK_TAGS):
        tag.append('\n')

    text = soup.get_text()
    text = text.replace('\xa0', ' ')
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n[ \t]+', '\n', text)
    text = re.sub(r'[ \t]+\n', '\n', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def extract_page_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return None


class UrlFetcher:
    """
    Fetches recipe pages and returns their text.

    Every failure is reported through UrlFetchResult.error; nothing raises.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.config = get_config()
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': self.config.fetch_user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
        })

    @staticmethod
    def normalize_url(url: str) -> str:
        """Trim and default the scheme to https"""
        normalized = (url or '').strip()
        if not normalized.startswith(('http://', 'https://')):
            normalized = 'https://' + normalized
        return normalized

    @staticmethod
    def _is_valid_url(url: str) -> bool:
        """Validate URL format and scheme"""
        try:
            result = urlparse(url)
            return all([result.scheme in ['http', 'https'], result.netloc])
        except ValueError:
            return False

    def fetch_url_content(self, url: str) -> UrlFetchResult:
        """
        Fetch a page and extract recipe text.

        Args:
            url: Page address; "https://" is assumed when no scheme is given

        Returns:
            UrlFetchResult with the text and page title, or an error message
        """
        if not url or not url.strip():
            return UrlFetchResult(success=False, error='Please enter a URL')

        normalized_url = self.normalize_url(url)
        if not self._is_valid_url(normalized_url):
            return UrlFetchResult(
                success=False, error='Invalid URL format. Please enter a valid web address.'
            )

        try:
            response = self.session.get(
                normalized_url,
                timeout=self.config.fetch_timeout_seconds,
                allow_redirects=True
            )
        except requests.exceptions.Timeout:
            logger.error(f"Request timeout for {normalized_url}")
            return UrlFetchResult(
                success=False, error='Request timed out. The website may be slow or unavailable.'
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error for {normalized_url}: {e}")
            return UrlFetchResult(
                success=False, error='Network error. Please check your internet connection.'
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {normalized_url}: {e}")
            return UrlFetchResult(success=False, error=f'Failed to fetch URL: {e}')

        if not response.ok:
            logger.warning(f"HTTP {response.status_code} for {normalized_url}")
            if response.status_code == 404:
                return UrlFetchResult(success=False, error='Page not found. Please check the URL.')
            if response.status_code == 403:
                return UrlFetchResult(
                    success=False,
                    error='Access denied. This website may be blocking automated requests.'
                )
            return UrlFetchResult(
                success=False, error=f'Failed to load page (HTTP {response.status_code})'
            )

        html = response.text
        if not html or not html.strip():
            return UrlFetchResult(success=False, error='The page appears to be empty.')

        soup = BeautifulSoup(html, 'html.parser')
        title = extract_page_title(soup)

        json_ld_text = extract_json_ld_recipe(soup)
        if json_ld_text:
            logger.info(f"Extracted JSON-LD recipe from {normalized_url}")
            return UrlFetchResult(success=True, text=json_ld_text, title=title)

        text = html_to_text(soup)
        if len(text) < MIN_TEXT_LENGTH:
            return UrlFetchResult(
                success=False,
                error='Could not extract enough content from this page. '
                      'It may require JavaScript to load.'
            )

        max_length = self.config.fetch_max_text_length
        if len(text) > max_length:
            text = text[:max_length] + TRUNCATION_MARKER

        logger.info(f"Extracted {len(text)} characters of page text from {normalized_url}")
        return UrlFetchResult(success=True, text=text, title=title)

    def fetch_url_with_retry(self, url: str, max_retries: int = 2,
                             retry_delay_seconds: float = 1.0) -> UrlFetchResult:
        """Fetch with retries; invalid input, 404 and 403 are returned at once"""
        last_result: Optional[UrlFetchResult] = None

        for attempt in range(max_retries):
            result = self.fetch_url_content(url)
            if result.success:
                return result
            if result.error and any(marker in result.error for marker in NON_RETRYABLE_ERRORS):
                return result

            last_result = result
            if attempt < max_retries - 1:
                time.sleep(retry_delay_seconds)

        return last_result or UrlFetchResult(
            success=False, error='Failed to fetch URL after multiple attempts.'
        )


def get_url_fetcher() -> UrlFetcher:
    """Factory function to get URL fetcher instance"""
    return UrlFetcher()

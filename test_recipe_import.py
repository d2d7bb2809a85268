#!/usr/bin/env python3
"""
Test script for recipe import.
Tests web page fetching and flattening, AI extraction over a mocked
OpenAI-compatible endpoint, and the AI-then-parser import flow.
"""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

import requests

from models import UNTITLED_RECIPE, FormatResult, FormattedRecipe, OCRResult, UrlFetchResult
from services.ai_service import (
    AIService, NOT_CONFIGURED_ERROR, PARSE_ERROR, normalize_recipe_payload, strip_code_fences
)
from services.collection_service import CollectionService
from services.import_service import RecipeImportService
from services.storage_service import create_storage_for_testing
from services.url_fetcher import (
    UrlFetcher, TRUNCATION_MARKER, format_duration, format_json_ld_recipe
)
from utils import Config

PANCAKE_TEXT = """Fluffy Pancakes
Serves 4
Ingredients:
2 cups flour
1/2 tsp salt
2 eggs
Instructions:
1. Mix everything.
2. Heat a pan over medium heat.
3. Cook until golden."""

JSON_LD_RECIPE = {
    "@type": ["Recipe"],
    "name": "Pancakes",
    "prepTime": "PT10M",
    "recipeYield": ["4", "4 pancakes"],
    "recipeIngredient": ["2 cups flour", "1/2 tsp salt"],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Mix everything."},
        {"@type": "HowToStep", "text": "Cook until golden."},
    ],
}

PLAIN_PAGE = """<html>
<head><title>Weeknight Chili</title><style>body { color: red; }</style></head>
<body>
<script>var tracking = "do not show";</script>
<h1>Weeknight Chili</h1>
<p>A hearty chili that comes together in under an hour on a busy evening.</p>
<ul>
  <li>1 lb ground beef</li>
  <li>1 can kidney beans</li>
</ul>
<p>Brown the beef, add the beans and simmer for thirty minutes.</p>
</body>
</html>"""


def make_response(status_code=200, text="", json_body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    response.json.return_value = json_body
    return response


def make_fetcher(response=None, side_effect=None, **config):
    session = MagicMock()
    session.headers = {}
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    fetcher = UrlFetcher(session=session)
    fetcher.config = Config(**config)
    return fetcher, session


def make_ai_service(**config):
    session = MagicMock()
    service = AIService(session=session)
    service.config = Config(**config)
    return service, session


def chat_reply(content):
    return make_response(200, json_body={'choices': [{'message': {'content': content}}]})


# URL fetching

def test_format_helpers():
    """Test duration and JSON-LD rendering"""
    print("Testing page rendering helpers...")
    assert format_duration("PT1H30M") == "90 minutes"
    assert format_duration("PT2H") == "120 minutes"
    assert format_duration("PT45M") == "45 minutes"
    assert format_duration("15 minutes") == "15 minutes"
    assert format_duration(None) is None

    text = format_json_ld_recipe({
        "name": "Stew",
        "recipeIngredient": ["1 onion"],
        "recipeInstructions": [
            "Chop the onion.",
            {"@type": "HowToSection", "name": "Finish", "itemListElement": [
                {"@type": "HowToStep", "text": "Simmer."}
            ]},
        ],
    })
    lines = text.split('\n')
    assert lines[0] == "Recipe: Stew"
    assert "- 1 onion" in lines
    assert "1. Chop the onion." in lines
    assert "Finish:" in lines
    assert "2. Simmer." in lines
    print("[OK] JSON-LD rendered with section headers")


def test_fetch_validation():
    """Test URL validation"""
    fetcher, session = make_fetcher(make_response(200, PLAIN_PAGE))

    assert fetcher.fetch_url_content("  ").error == 'Please enter a URL'
    assert fetcher.fetch_url_content("http://").error.startswith('Invalid URL format')
    session.get.assert_not_called()

    assert UrlFetcher.normalize_url(" example.com/chili ") == "https://example.com/chili"
    assert UrlFetcher.normalize_url("http://example.com") == "http://example.com"
    print("[OK] URL validation and normalization")


def test_fetch_json_ld():
    """Test that structured recipe data is preferred"""
    html = (
        "<html><head><title>Pancakes | Breakfast Site</title>"
        '<script type="application/ld+json">'
        + json.dumps({"@context": "https://schema.org", "@graph": [{"@type": "WebPage"}, JSON_LD_RECIPE]})
        + "</script></head><body><p>Ads and stories</p></body></html>"
    )
    fetcher, session = make_fetcher(make_response(200, html))

    result = fetcher.fetch_url_content("example.com/pancakes")
    assert result.success
    assert result.title == "Pancakes | Breakfast Site"
    assert result.text.startswith("Recipe: Pancakes")
    assert "Prep Time: 10 minutes" in result.text
    assert "Servings: 4" in result.text
    assert "Ads and stories" not in result.text
    assert session.get.call_args[0][0] == "https://example.com/pancakes"
    print("[OK] JSON-LD recipe extracted from @graph")


def test_fetch_plain_page():
    """Test visible text fallback"""
    fetcher, _ = make_fetcher(make_response(200, PLAIN_PAGE))

    result = fetcher.fetch_url_content("https://example.com/chili")
    assert result.success
    assert result.title == "Weeknight Chili"
    assert "- 1 lb ground beef" in result.text
    assert "simmer for thirty minutes" in result.text
    assert "tracking" not in result.text
    assert "color: red" not in result.text
    print("[OK] Page flattened to text")

    fetcher, _ = make_fetcher(make_response(200, PLAIN_PAGE), fetch_max_text_length=60)
    result = fetcher.fetch_url_content("https://example.com/chili")
    assert result.text.endswith(TRUNCATION_MARKER)
    assert len(result.text) == 60 + len(TRUNCATION_MARKER)
    print("[OK] Long pages truncated")

    fetcher, _ = make_fetcher(make_response(200, "<html><body><p>Loading...</p></body></html>"))
    assert "Could not extract enough content" in fetcher.fetch_url_content("example.com").error

    fetcher, _ = make_fetcher(make_response(200, "   "))
    assert fetcher.fetch_url_content("example.com").error == 'The page appears to be empty.'
    print("[OK] Empty and script-only pages rejected")


def test_fetch_errors_and_retry():
    """Test HTTP and network errors"""
    print("\n[TEST] Fetch errors:")
    fetcher, session = make_fetcher(make_response(404))
    result = fetcher.fetch_url_with_retry("example.com/missing", retry_delay_seconds=0)
    assert result.error == 'Page not found. Please check the URL.'
    assert session.get.call_count == 1
    print("[OK] 404 is not retried")

    fetcher, session = make_fetcher(make_response(403))
    assert fetcher.fetch_url_content("example.com").error.startswith('Access denied')

    fetcher, session = make_fetcher(make_response(500))
    result = fetcher.fetch_url_with_retry("example.com", max_retries=3, retry_delay_seconds=0)
    assert result.error == 'Failed to load page (HTTP 500)'
    assert session.get.call_count == 3
    print("[OK] Server errors are retried")

    fetcher, _ = make_fetcher(side_effect=requests.exceptions.Timeout())
    assert fetcher.fetch_url_content("example.com").error.startswith('Request timed out')

    fetcher, _ = make_fetcher(side_effect=requests.exceptions.ConnectionError())
    assert fetcher.fetch_url_content("example.com").error.startswith('Network error')

    fetcher, session = make_fetcher(side_effect=[
        requests.exceptions.ConnectionError(), make_response(200, PLAIN_PAGE)
    ])
    assert fetcher.fetch_url_with_retry("example.com", retry_delay_seconds=0).success
    assert session.get.call_count == 2
    print("[OK] Network errors recover on retry")


# AI extraction

def test_payload_normalization():
    """Test coercion of the model's JSON"""
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    recipe = normalize_recipe_payload({
        'name': 'Soup',
        'ingredients': [
            {'name': 'Carrot', 'amount': 2, 'unit': 'whole', 'alternatives': ['Parsnip']},
            'not an ingredient',
        ],
        'instructions': ['Chop.', 'Simmer.'],
        'prepTime': 15,
        'dietaryInfo': {'vegan': True, 'glutenFree': True},
    })
    assert recipe.name == 'Soup'
    assert len(recipe.ingredients) == 1
    assert recipe.ingredients[0].amount == '2'
    assert recipe.ingredients_with_alternatives() == [0]
    assert recipe.prep_time == '15'
    assert recipe.cook_time == ''
    assert recipe.difficulty == 'medium'
    assert recipe.dietary_info.vegan and recipe.dietary_info.gluten_free
    assert not recipe.dietary_info.vegetarian

    assert normalize_recipe_payload({}).name == UNTITLED_RECIPE
    print("[OK] AI payload normalized")


def test_ai_format_recipe():
    """Test the chat completions call"""
    print("\n[TEST] AI extraction:")
    service, session = make_ai_service(ai_enabled=True, ai_api_key="secret", ai_model="test-model")
    reply = {'name': 'Pancakes', 'ingredients': [{'name': 'Flour', 'amount': '2', 'unit': 'cup'}],
             'instructions': ['Mix.']}
    session.post.return_value = chat_reply("```json\n" + json.dumps(reply) + "\n```")

    result = service.format_recipe("2 cups flour\nMix.", source='url')
    assert result.success
    assert result.recipe.name == 'Pancakes'
    assert result.recipe.ingredients[0].unit == 'cup'

    args, kwargs = session.post.call_args
    assert args[0] == "http://localhost:1234/v1/chat/completions"
    assert kwargs['json']['model'] == "test-model"
    assert kwargs['json']['messages'][0]['content'].endswith("2 cups flour\nMix.")
    assert "web page content" in kwargs['json']['messages'][0]['content']
    assert kwargs['headers']['Authorization'] == "Bearer secret"
    print("[OK] Recipe extracted from chat reply")

    session.post.return_value = chat_reply("Sorry, I can't help with that.")
    assert service.format_recipe("text").error == PARSE_ERROR

    session.post.return_value = chat_reply("")
    assert service.format_recipe("text").error == 'No response from AI service.'

    session.post.return_value = make_response(429, text="slow down")
    assert service.format_recipe("text").error.startswith('Too many requests')

    session.post.side_effect = requests.exceptions.ConnectionError("refused")
    assert service.format_recipe("text").error.startswith('Recipe formatting failed')
    print("[OK] Failures reported as errors")

    service, session = make_ai_service(ai_enabled=False)
    assert service.format_recipe("text").error == NOT_CONFIGURED_ERROR
    assert not service.is_ai_available()
    session.post.assert_not_called()
    print("[OK] Disabled AI is never called")


def test_ai_retry():
    """Test retry behaviour"""
    service, session = make_ai_service(ai_enabled=True)
    session.post.return_value = make_response(403)
    result = service.format_recipe_with_retry("text", max_retries=3, retry_delay_seconds=0)
    assert 'access denied' in result.error
    assert session.post.call_count == 1

    service, session = make_ai_service(ai_enabled=True, ai_max_retries=2)
    session.post.return_value = make_response(500, text="boom")
    result = service.format_recipe_with_retry("text", retry_delay_seconds=0)
    assert result.error == "AI API error (500): boom"
    assert session.post.call_count == 2
    print("[OK] Permission errors are not retried")


def test_ai_health_check():
    """Test the cached availability check"""
    service, session = make_ai_service(ai_enabled=True)
    session.get.return_value = make_response(200)

    assert service.is_ai_available()
    assert service.is_ai_available()
    assert session.get.call_count == 1

    session.get.return_value = make_response(503)
    assert not service.is_ai_available(force_check=True)
    assert session.get.call_count == 2
    print("[OK] Health check cached")


# Import flow

def make_import_service(ai_enabled=False, ai_available=None):
    service = RecipeImportService(ai_service=MagicMock(), url_fetcher=MagicMock())
    service.config = Config(ai_enabled=ai_enabled)
    service.ai.is_ai_available.return_value = ai_enabled if ai_available is None else ai_available
    return service


def test_import_with_parser():
    """Test import through the local parser"""
    print("\n[TEST] Import flow:")
    service = make_import_service()

    result = service.import_text(PANCAKE_TEXT)
    assert result.success
    assert result.source == 'parser'
    assert result.confidence == 1.0
    assert result.recipe.name == "Fluffy Pancakes"
    assert [i.amount for i in result.recipe.ingredients] == ['2', '0.5', '2']
    assert result.warnings == []
    service.ai.format_recipe_with_retry.assert_not_called()
    print("[OK] Parser used when AI is disabled")

    assert service.import_text("   ").error == 'No text provided to import.'
    assert service.import_text("???\n!!!").error == 'Could not find a recipe in this text.'

    result = service.import_text("Toast\nBread\nButter")
    assert result.success
    assert result.confidence < 0.5
    assert any('Low confidence' in w for w in result.warnings)
    print("[OK] Low confidence parses are flagged")


def test_import_with_ai():
    """Test AI first, parser as fallback"""
    service = make_import_service(ai_enabled=True)
    service.ai.format_recipe_with_retry.return_value = FormatResult(
        success=True, recipe=FormattedRecipe(name="AI Pancakes")
    )
    result = service.import_text(PANCAKE_TEXT)
    assert result.source == 'ai'
    assert result.recipe.name == "AI Pancakes"
    assert result.confidence is None

    service.ai.format_recipe_with_retry.return_value = FormatResult(
        success=False, error="Too many requests. Please wait a moment and try again."
    )
    result = service.import_text(PANCAKE_TEXT)
    assert result.success
    assert result.source == 'parser'
    assert result.recipe.name == "Fluffy Pancakes"
    assert result.warnings[0].startswith("AI extraction failed")
    print("[OK] Parser fallback when AI fails")


def test_import_with_unreachable_ai():
    """Test that an endpoint failing its health check is skipped"""
    service = make_import_service(ai_enabled=True, ai_available=False)

    result = service.import_text(PANCAKE_TEXT)
    assert result.success
    assert result.source == 'parser'
    assert 'unavailable' in result.warnings[0]
    service.ai.is_ai_available.assert_called_once_with()
    service.ai.format_recipe_with_retry.assert_not_called()
    print("[OK] Unreachable AI skipped without retries")


def test_import_ocr_and_url():
    """Test OCR and URL entry points"""
    service = make_import_service()

    result = service.import_ocr(OCRResult(success=False, error="Camera error"))
    assert not result.success
    assert result.error == "Camera error"
    assert service.import_ocr(OCRResult(success=True, raw_text=PANCAKE_TEXT)).success

    service.fetcher.fetch_url_with_retry.return_value = UrlFetchResult(
        success=True,
        text="INGREDIENTS:\n- 2 cups flour\n- 1 tsp salt\nINSTRUCTIONS:\n1. Mix.\n2. Cook.",
        title="Best Pancakes | Site"
    )
    result = service.import_url("example.com/pancakes")
    assert result.success
    assert result.recipe.name == "Best Pancakes | Site"
    assert len(result.recipe.ingredients) == 2
    print("[OK] Page title used for untitled recipes")

    service.fetcher.fetch_url_with_retry.return_value = UrlFetchResult(
        success=False, error='Page not found. Please check the URL.'
    )
    assert service.import_url("example.com/missing").error == 'Page not found. Please check the URL.'
    print("[OK] Fetch errors passed through")


def test_json_ld_import_saved():
    """Test that structured page times survive the parser and saving"""
    service = make_import_service(ai_enabled=True, ai_available=False)
    service.fetcher.fetch_url_with_retry.return_value = UrlFetchResult(
        success=True,
        text=format_json_ld_recipe({
            "name": "Beef Stew",
            "prepTime": "PT1H30M",
            "cookTime": "PT2H",
            "recipeYield": "6",
            "recipeIngredient": ["1 lb beef", "2 cups broth", "1 onion"],
            "recipeInstructions": [
                {"@type": "HowToStep", "text": "Brown the beef."},
                {"@type": "HowToStep", "text": "Simmer with the broth and onion."},
            ],
        }),
        title="Beef Stew | Site"
    )

    result = service.import_url("example.com/stew")
    assert result.success
    assert (result.recipe.prep_time, result.recipe.cook_time) == ("90", "120")

    collection = CollectionService(storage=create_storage_for_testing())
    saved = collection.save_imported_recipe(result.recipe)
    assert saved.name == "Beef Stew"
    assert (saved.prep_time, saved.cook_time, saved.servings) == (90, 120, 6)
    assert len(saved.ingredients) == 3
    print("[OK] Structured recipe times saved in minutes")


if __name__ == "__main__":
    print("=" * 60)
    print("RECIPE IMPORT TESTS")
    print("=" * 60)

    try:
        test_format_helpers()
        test_fetch_validation()
        test_fetch_json_ld()
        test_fetch_plain_page()
        test_fetch_errors_and_retry()
        test_payload_normalization()
        test_ai_format_recipe()
        test_ai_retry()
        test_ai_health_check()
        test_import_with_parser()
        test_import_with_ai()
        test_import_with_unreachable_ai()
        test_import_ocr_and_url()
        test_json_ld_import_saved()
        print("\n[SUCCESS] All recipe import tests passed!")
        sys.exit(0)
    except AssertionError as e:
        print(f"[FAIL] Recipe import test failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

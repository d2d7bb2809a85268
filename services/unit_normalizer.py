"""
Unit and amount normalization for ingredient text.

Maps OCR unit spellings to canonical units and turns amount strings
("½", "1 ½", "3/4", "1 1/2", "2.5") into numbers. Every function here is total:
unknown units pass through and unreadable amounts become 0.
"""

import math
import re
from typing import Dict, List


# Canonical unit -> accepted spellings
UNIT_VARIATIONS: Dict[str, List[str]] = {
    'cup': ['cup', 'cups', 'c.', 'c'],
    'tablespoon': ['tablespoon', 'tablespoons', 'tbsp', 'tbsps', 'tbs', 'T'],
    'teaspoon': ['teaspoon', 'teaspoons', 'tsp', 'tsps', 't'],
    'ounce': ['ounce', 'ounces', 'oz', 'oz.'],
    'pound': ['pound', 'pounds', 'lb', 'lbs', 'lb.'],
    'gram': ['gram', 'grams', 'g', 'g.'],
    'kilogram': ['kilogram', 'kilograms', 'kg', 'kg.'],
    'milliliter': ['milliliter', 'milliliters', 'ml', 'ml.'],
    'liter': ['liter', 'liters', 'l', 'L'],
    'pinch': ['pinch', 'pinches'],
    'dash': ['dash', 'dashes'],
    'clove': ['clove', 'cloves'],
    'slice': ['slice', 'slices'],
    'piece': ['piece', 'pieces', 'pc', 'pcs'],
    'can': ['can', 'cans'],
    'jar': ['jar', 'jars'],
    'package': ['package', 'packages', 'pkg', 'pkgs'],
    'bunch': ['bunch', 'bunches'],
    'head': ['head', 'heads'],
    'stalk': ['stalk', 'stalks'],
    'sprig': ['sprig', 'sprigs'],
    'handful': ['handful', 'handfuls'],
    'large': ['large', 'lg'],
    'medium': ['medium', 'med'],
    'small': ['small', 'sm'],
}

# Glyph -> ASCII fraction, used to clean lines before pattern matching
UNICODE_FRACTIONS: Dict[str, str] = {
    '¼': '1/4',
    '½': '1/2',
    '¾': '3/4',
    '⅓': '1/3',
    '⅔': '2/3',
    '⅕': '1/5',
    '⅖': '2/5',
    '⅗': '3/5',
    '⅘': '4/5',
    '⅙': '1/6',
    '⅚': '5/6',
    '⅛': '1/8',
    '⅜': '3/8',
    '⅝': '5/8',
    '⅞': '7/8',
}

# Glyph -> value, used when reading amounts typed into recipe forms
UNICODE_FRACTION_VALUES: Dict[str, float] = {
    '½': 0.5, '⅓': 1 / 3, '⅔': 2 / 3, '¼': 0.25, '¾': 0.75,
    '⅕': 0.2, '⅖': 0.4, '⅗': 0.6, '⅘': 0.8,
    '⅙': 1 / 6, '⅚': 5 / 6, '⅐': 1 / 7, '⅛': 0.125, '⅜': 0.375,
    '⅝': 0.625, '⅞': 0.875, '⅑': 1 / 9, '⅒': 0.1,
}

_SPELLING_TO_UNIT: Dict[str, str] = {}
for _canonical, _spellings in UNIT_VARIATIONS.items():
    for _spelling in _spellings:
        # First canonical unit wins for spellings that collide once lowercased
        _SPELLING_TO_UNIT.setdefault(_spelling.lower(), _canonical)

_SLASH_FRACTION = re.compile(r'^(\d+)\s*/\s*(\d+)$')
_MIXED_SLASH_FRACTION = re.compile(r'^(\d+)\s+(\d+)\s*/\s*(\d+)$')
_LEADING_FLOAT = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
_DIGIT_BEFORE_GLYPH = re.compile(r'(\d)([%s])' % ''.join(UNICODE_FRACTIONS))


def normalize_unit(raw: str) -> str:
    """
    Map a unit spelling to its canonical name.

    Unknown units are returned lowercased and trimmed, never rejected.
    """
    lower_unit = (raw or '').lower().strip()
    return _SPELLING_TO_UNIT.get(lower_unit, lower_unit)


def parse_float_prefix(text: str) -> float:
    """
    Read the leading number of a string ("2.5 cups" -> 2.5).

    Returns NaN when the string does not start with a finite number.
    """
    match = _LEADING_FLOAT.match((text or '').strip())
    if not match:
        return float('nan')
    value = float(match.group(0))
    return value if math.isfinite(value) else float('nan')


def parse_fraction_amount(raw: str) -> float:
    """
    Convert an amount string to a decimal.

    Resolution order: standalone unicode fraction, whole number plus unicode
    fraction ("1 ½", "1½"), slash fraction ("3/4"), mixed slash fraction
    ("1 1/2"), then a plain number. Anything unreadable is 0.
    """
    if not raw or not raw.strip():
        return 0.0

    text = raw.strip()

    if text in UNICODE_FRACTION_VALUES:
        return UNICODE_FRACTION_VALUES[text]

    for glyph, value in UNICODE_FRACTION_VALUES.items():
        if glyph in text:
            whole_part = text.replace(glyph, '', 1).strip()
            whole = parse_float_prefix(whole_part) if whole_part else 0.0
            if not math.isnan(whole):
                return whole + value

    slash_match = _SLASH_FRACTION.match(text)
    if slash_match:
        numerator, denominator = int(slash_match.group(1)), int(slash_match.group(2))
        if denominator != 0:
            return numerator / denominator

    mixed_match = _MIXED_SLASH_FRACTION.match(text)
    if mixed_match:
        whole = int(mixed_match.group(1))
        numerator, denominator = int(mixed_match.group(2)), int(mixed_match.group(3))
        if denominator != 0:
            return whole + numerator / denominator

    parsed = parse_float_prefix(text)
    return 0.0 if math.isnan(parsed) else parsed


def normalize_unicode_fractions(text: str) -> str:
    """
    Replace unicode fraction glyphs with ASCII "N/D".

    A glyph glued to a digit is split off first so "1½" reads as "1 1/2".
    """
    if not text:
        return text or ''
    result = _DIGIT_BEFORE_GLYPH.sub(r'\1 \2', text)
    for glyph, ascii_fraction in UNICODE_FRACTIONS.items():
        result = result.replace(glyph, ascii_fraction)
    return result

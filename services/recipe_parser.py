"""
Free-text recipe parser.

Turns noisy OCR or flattened HTML text into a ParsedRecipe without any
external service. Used as the fallback when AI extraction is unavailable or
fails, and produces the same shape so callers can use either source.

Pipeline: split lines, pick a title, scan metadata, locate ingredient and
instruction sections, parse them, fall back to a single-pass heuristic when
sections are missing, then score confidence.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from models import (
    UNTITLED_RECIPE, ParsedIngredient, ParsedRecipe, OCRResult,
    FormattedIngredient, FormattedRecipe
)
from services.unit_normalizer import (
    UNIT_VARIATIONS, normalize_unit, normalize_unicode_fractions, parse_fraction_amount
)
from services.unit_conversion import format_amount
from utils import get_logger

logger = get_logger(__name__)


# Build the unit alternation in table order; regex alternation is ordered
_ALL_UNITS = '|'.join(re.escape(v) for variations in UNIT_VARIATIONS.values() for v in variations)
_FRACTION = r'\d+/\d+'
_NUMBER = rf'(?:\d+(?:\.\d+)?\s*(?:{_FRACTION})?|{_FRACTION})'
_RANGE = rf'{_NUMBER}(?:\s*[-–—]\s*|\s+to\s+){_NUMBER}'
_AMOUNT = rf'(?:{_RANGE}|{_NUMBER})'

INGREDIENT_LINE_REGEX = re.compile(
    rf'^\s*({_AMOUNT})\s*({_ALL_UNITS})?[.,]?\s+(.+?)\s*$',
    re.IGNORECASE
)

# "Salt to taste", "Pepper as needed", "Parsley for garnish", "Chili flakes (optional)"
INGREDIENT_NO_AMOUNT_REGEX = re.compile(
    r'^[A-Za-z][^0-9]*(?:to taste|as needed|for garnish|optional)?\s*$',
    re.IGNORECASE
)

SECTION_PATTERNS = {
    'ingredients': re.compile(
        r"^(?:ingredients?|what you(?:'ll)? need|you(?:'ll)? need):?\s*$", re.IGNORECASE
    ),
    'instructions': re.compile(
        r'^(?:instructions?|directions?|method|steps?|how to (?:make|prepare)|preparation):?\s*$',
        re.IGNORECASE
    ),
}

METADATA_PATTERNS = {
    'prep_time': re.compile(
        r'(?:prep(?:aration)?[ \t:]*(time)?|prep)[ \t:]+(\d+)\s*(?:min(?:ute)?s?|hrs?|hours?)?',
        re.IGNORECASE
    ),
    'cook_time': re.compile(
        r'(?:cook(?:ing)?[ \t:]*(time)?|cook)[ \t:]+(\d+)\s*(?:min(?:ute)?s?|hrs?|hours?)?',
        re.IGNORECASE
    ),
    'servings': re.compile(r'(?:servings?|serves?|yields?|makes?)[ \t:]+(\d+)', re.IGNORECASE),
}

# A whole line that only carries metadata ("Prep time: 15 min", "Serves 4")
METADATA_LINE_REGEX = re.compile(
    r'^(?:(?:prep(?:aration)?|cook(?:ing)?|total)(?:\s*time\s*:?|\s*:)\s*\d+'
    r'|(?:servings?|serves?|yields?|makes?)[ \t:]+\d+)',
    re.IGNORECASE
)

ACTION_VERBS = (
    'preheat', 'mix', 'stir', 'add', 'combine', 'pour', 'bake', 'cook', 'heat', 'boil',
    'simmer', 'whisk', 'fold', 'beat', 'chop', 'slice', 'dice', 'mince', 'grate', 'blend',
    'puree', 'saute', 'fry', 'roast', 'grill', 'broil', 'steam', 'drain', 'rinse', 'season',
    'serve', 'garnish', 'let', 'allow', 'set', 'place', 'remove', 'transfer', 'cover', 'uncover',
)

_NUMBERED_STEP = re.compile(r'^\d+[.)]\s')
_NUMBERED_STEP_TEXT = re.compile(r'^(\d+)[.)]\s*(.*)$')
_NUMBERED_PREFIX = re.compile(r'^\d+[.)]\s*')
_ACTION_VERB = re.compile(r'^(?:%s)\b' % '|'.join(ACTION_VERBS), re.IGNORECASE)
_BULLET = re.compile(r'^[-•*·]\s+')
_TITLE_SKIP_PATTERNS = [
    re.compile(r'^page\s+\d+', re.IGNORECASE),
    re.compile(r'^\d+$'),
    re.compile(r'^www\.', re.IGNORECASE),
    re.compile(r'^http', re.IGNORECASE),
    re.compile(r'^@'),
    re.compile(r'^copyright', re.IGNORECASE),
    re.compile(r'^(?:description|category|cuisine):', re.IGNORECASE),
]
_TITLE_NUMBERED = re.compile(r'^\d+[.)\s]')
# "Recipe: Pancakes" as rendered from structured page data
_TITLE_LABEL = re.compile(r'^recipe:\s*', re.IGNORECASE)

TITLE_SCAN_LINES = 10
MAX_NAME_ONLY_LENGTH = 100
LONG_LINE_LENGTH = 50
INSTRUCTION_CONTINUATION_LENGTH = 20


@dataclass
class SectionBounds:
    """Half-open line ranges; -1 start means the section was not found"""
    ingredients_start: int = -1
    ingredients_end: int = -1
    instructions_start: int = -1
    instructions_end: int = -1

    def has_ingredients(self) -> bool:
        return self.ingredients_start != -1 and self.ingredients_start < self.ingredients_end

    def has_instructions(self) -> bool:
        return self.instructions_start != -1 and self.instructions_start < self.instructions_end


@dataclass
class ParseCandidate:
    """Ingredients and instructions found by one parsing strategy"""
    ingredients: List[ParsedIngredient] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)

    def is_sufficient(self) -> bool:
        return len(self.ingredients) >= 2 and len(self.instructions) >= 1


# Line classification

def parse_ingredient_line(line: str) -> Optional[ParsedIngredient]:
    """
    Parse one ingredient line into amount, unit and name.

    Tries "<amount> <unit> <name>", then a no-amount form ("Salt to taste"),
    then keeps any short letter-led line as a bare name. Returns None for
    lines that fit none of these.
    """
    normalized = normalize_unicode_fractions((line or '').strip())
    normalized = _BULLET.sub('', normalized)

    if len(normalized) < 2:
        return None

    match = INGREDIENT_LINE_REGEX.match(normalized)
    if match:
        amount, unit, name = match.groups()
        return ParsedIngredient(
            amount=(amount or '').strip(),
            unit=normalize_unit(unit) if unit else '',
            name=(name or '').strip()
        )

    if INGREDIENT_NO_AMOUNT_REGEX.match(normalized):
        return ParsedIngredient(amount='', unit='', name=normalized)

    if normalized[0].isascii() and normalized[0].isalpha() and len(normalized) < MAX_NAME_ONLY_LENGTH:
        return ParsedIngredient(amount='', unit='', name=normalized)

    return None


def is_instruction_line(line: str) -> bool:
    """True for numbered steps ("1. ", "2) ") and lines led by a cooking verb"""
    trimmed = (line or '').strip()
    if _NUMBERED_STEP.match(trimmed):
        return True
    return bool(_ACTION_VERB.match(trimmed))


def is_section_header(line: str) -> Optional[str]:
    """Return 'ingredients' or 'instructions' for header lines, else None"""
    trimmed = (line or '').strip()
    for section, pattern in SECTION_PATTERNS.items():
        if pattern.match(trimmed):
            return section
    return None


def is_metadata_line(line: str) -> bool:
    """True for lines that only state prep/cook time or servings"""
    return bool(METADATA_LINE_REGEX.match((line or '').strip()))


# Pipeline steps

def split_into_lines(text: str) -> List[str]:
    """Split on any line ending, trim, drop empty lines"""
    lines = (line.strip() for line in re.split(r'\r\n|\r|\n', text or ''))
    return [line for line in lines if line]


def extract_title(lines: List[str]) -> Tuple[str, Optional[int]]:
    """
    Pick the recipe title from the first lines.

    Returns (title, line index); the index is None when no line qualified.
    """
    for i, line in enumerate(lines[:TITLE_SCAN_LINES]):
        if any(pattern.match(line) for pattern in _TITLE_SKIP_PATTERNS):
            continue
        if len(line) < 3 or _BULLET.match(line):
            continue
        if is_section_header(line) or is_metadata_line(line):
            continue
        if _TITLE_NUMBERED.match(line):
            continue
        parsed = parse_ingredient_line(line)
        if parsed and parsed.amount and parsed.unit:
            continue
        return _TITLE_LABEL.sub('', line) or line, i

    return UNTITLED_RECIPE, None


def extract_metadata(text: str) -> Dict[str, str]:
    """Find prep time, cook time and servings anywhere in the text"""
    metadata = {'prep_time': '', 'cook_time': '', 'servings': ''}

    prep_match = METADATA_PATTERNS['prep_time'].search(text)
    if prep_match:
        metadata['prep_time'] = prep_match.group(2) or ''

    cook_match = METADATA_PATTERNS['cook_time'].search(text)
    if cook_match:
        metadata['cook_time'] = cook_match.group(2) or ''

    servings_match = METADATA_PATTERNS['servings'].search(text)
    if servings_match:
        metadata['servings'] = servings_match.group(1) or ''

    return metadata


def identify_sections(lines: List[str]) -> SectionBounds:
    """
    Locate the ingredient and instruction sections.

    Ingredients run from after their header to the next header. Without an
    instructions header they stop at the first instruction-looking line,
    which then starts the instructions.
    """
    bounds = SectionBounds()

    for i, line in enumerate(lines):
        section = is_section_header(line)
        if section == 'ingredients':
            bounds.ingredients_start = i + 1
        elif section == 'instructions':
            if bounds.ingredients_start != -1 and bounds.ingredients_end == -1:
                bounds.ingredients_end = i
            bounds.instructions_start = i + 1

    if bounds.ingredients_start != -1 and bounds.ingredients_end == -1:
        for i in range(bounds.ingredients_start, len(lines)):
            if is_instruction_line(lines[i]):
                bounds.ingredients_end = i
                if bounds.instructions_start == -1:
                    bounds.instructions_start = i
                break

    if bounds.ingredients_end == -1:
        bounds.ingredients_end = (
            bounds.instructions_start if bounds.instructions_start != -1 else len(lines)
        )
    if bounds.instructions_start == -1:
        bounds.instructions_start = bounds.ingredients_end
    if bounds.instructions_end == -1:
        bounds.instructions_end = len(lines)

    return bounds


def parse_ingredient_lines(lines: List[str]) -> List[ParsedIngredient]:
    ingredients = []
    for line in lines:
        if is_section_header(line) or is_metadata_line(line) or len(line) < 2:
            continue
        parsed = parse_ingredient_line(line)
        if parsed:
            ingredients.append(parsed)
    return ingredients


def parse_instruction_lines(lines: List[str]) -> List[str]:
    """
    Group lines into steps. Numbered and verb-led lines open a new step,
    other lines continue the current one.
    """
    instructions = []
    current = ''

    for line in lines:
        if is_section_header(line):
            continue

        numbered = _NUMBERED_STEP_TEXT.match(line)
        if numbered:
            if current:
                instructions.append(current.strip())
            current = numbered.group(2)
        elif is_instruction_line(line):
            if current:
                instructions.append(current.strip())
            current = line
        elif current:
            current += ' ' + line
        else:
            current = line

    if current:
        instructions.append(current.strip())

    return [step for step in instructions if step]


def parse_sections(lines: List[str], bounds: SectionBounds) -> ParseCandidate:
    """Section-based strategy: parse each located section on its own"""
    candidate = ParseCandidate()
    if bounds.has_ingredients():
        candidate.ingredients = parse_ingredient_lines(
            lines[bounds.ingredients_start:bounds.ingredients_end]
        )
    if bounds.has_instructions():
        candidate.instructions = parse_instruction_lines(
            lines[bounds.instructions_start:bounds.instructions_end]
        )
    return candidate


def parse_heuristically(lines: List[str], title_index: Optional[int]) -> ParseCandidate:
    """
    Single-pass strategy for text without usable section headers.

    Starts in ingredients mode and switches to instructions on an
    instructions header, a verb-led or numbered line, or a long line with no
    amount.
    """
    candidate = ParseCandidate()
    in_ingredients = True
    start = title_index + 1 if title_index is not None else 0

    for line in lines[start:]:
        section = is_section_header(line)
        if section == 'ingredients':
            in_ingredients = True
            continue
        if section == 'instructions':
            in_ingredients = False
            continue
        if is_metadata_line(line):
            continue

        parsed = parse_ingredient_line(line)
        numbered = bool(_NUMBERED_STEP.match(line))

        if in_ingredients and not numbered and parsed and (parsed.amount or parsed.unit):
            candidate.ingredients.append(parsed)
        elif is_instruction_line(line):
            in_ingredients = False
            cleaned = _NUMBERED_PREFIX.sub('', line).strip()
            if cleaned:
                candidate.instructions.append(cleaned)
        elif not in_ingredients and len(line) > INSTRUCTION_CONTINUATION_LENGTH:
            candidate.instructions.append(line)
        elif parsed and parsed.name and not parsed.amount:
            if len(line) >= LONG_LINE_LENGTH:
                candidate.instructions.append(line)
                in_ingredients = False
            else:
                candidate.ingredients.append(parsed)

    return candidate


def merge_candidates(primary: ParseCandidate, fallback: ParseCandidate) -> ParseCandidate:
    """Keep whichever strategy found more items, per field; ties keep primary"""
    return ParseCandidate(
        ingredients=(fallback.ingredients
                     if len(fallback.ingredients) > len(primary.ingredients)
                     else primary.ingredients),
        instructions=(fallback.instructions
                      if len(fallback.instructions) > len(primary.instructions)
                      else primary.instructions)
    )


def calculate_confidence(parsed: ParsedRecipe) -> float:
    """
    Score parse quality in [0, 1].

    Title 20, ingredients 40 (20 for fewer than 3), instructions 30 (15 for
    fewer than 3), metadata 10. Ingredients with amounts add a 10 point bonus
    that only counts toward the maximum when earned.
    """
    score = 0
    max_score = 0

    max_score += 20
    if parsed.name and parsed.name != UNTITLED_RECIPE:
        score += 20

    max_score += 40
    if len(parsed.ingredients) >= 3:
        score += 40
    elif len(parsed.ingredients) >= 1:
        score += 20

    with_amounts = sum(1 for ingredient in parsed.ingredients if ingredient.has_amount())
    if parsed.ingredients and with_amounts >= len(parsed.ingredients) * 0.5:
        score += 10
        max_score += 10

    max_score += 30
    if len(parsed.instructions) >= 3:
        score += 30
    elif len(parsed.instructions) >= 1:
        score += 15

    max_score += 10
    if parsed.has_metadata():
        score += 10

    return score / max_score if max_score > 0 else 0.0


def _empty_recipe() -> ParsedRecipe:
    return ParsedRecipe(name=UNTITLED_RECIPE, confidence=0.0)


def parse_recipe_text(source: Union[str, OCRResult, None]) -> ParsedRecipe:
    """
    Parse raw recipe text (or an OCR result) into a ParsedRecipe.

    Never raises; empty or failed input gives an untitled recipe with
    confidence 0.
    """
    if isinstance(source, OCRResult):
        if not source.success:
            return _empty_recipe()
        text = source.raw_text
    else:
        text = source

    if not text:
        return _empty_recipe()

    normalized_text = normalize_unicode_fractions(text)
    lines = split_into_lines(normalized_text)
    if not lines:
        return _empty_recipe()

    title, title_index = extract_title(lines)
    metadata = extract_metadata(normalized_text)

    bounds = identify_sections(lines)
    result = parse_sections(lines, bounds)

    if not result.is_sufficient():
        heuristic = parse_heuristically(lines, title_index)
        result = merge_candidates(result, heuristic)

    parsed = ParsedRecipe(
        name=title,
        ingredients=result.ingredients,
        instructions=result.instructions,
        prep_time=metadata['prep_time'],
        cook_time=metadata['cook_time'],
        servings=metadata['servings'],
    )
    parsed.confidence = calculate_confidence(parsed)

    logger.debug(
        f"Parsed '{parsed.name}': {len(parsed.ingredients)} ingredients, "
        f"{len(parsed.instructions)} steps, confidence {parsed.confidence:.2f}"
    )
    return parsed


# Output adapters

def convert_to_form_data(parsed: ParsedRecipe) -> Dict[str, Any]:
    """
    Pre-fill values for the recipe form. Empty lists get one blank row so
    the form always has an input to type into.
    """
    ingredients = [
        {'name': i.name, 'amount': i.amount, 'unit': i.unit} for i in parsed.ingredients
    ] or [{'name': '', 'amount': '', 'unit': ''}]
    return {
        'name': parsed.name,
        'description': parsed.description,
        'ingredients': ingredients,
        'instructions': list(parsed.instructions) or [''],
        'prepTime': parsed.prep_time,
        'cookTime': parsed.cook_time,
        'servings': parsed.servings,
        'cuisine': parsed.cuisine,
        'category': parsed.category,
    }


def to_formatted_recipe(parsed: ParsedRecipe) -> FormattedRecipe:
    """Express a parser result in the shape AI extraction returns"""
    return FormattedRecipe(
        name=parsed.name or UNTITLED_RECIPE,
        description=parsed.description,
        ingredients=[
            FormattedIngredient(
                name=i.name,
                amount=format_amount(parse_fraction_amount(i.amount)) if i.amount else '',
                unit=i.unit
            )
            for i in parsed.ingredients
        ],
        instructions=list(parsed.instructions),
        prep_time=parsed.prep_time,
        cook_time=parsed.cook_time,
        servings=parsed.servings,
        cuisine=parsed.cuisine,
        category=parsed.category,
    )

"""
Unit system conversion for recipe display.

Converts an amount+unit between the recipe's original units, metric and
imperial using per-category factors to a base unit (grams for weight,
milliliters for volume). No rounding happens here; format_amount is the
display step.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from utils import get_logger

logger = get_logger(__name__)


UNIT_CONVERSIONS: Dict[str, Dict[str, float]] = {
    'volume': {
        'ml': 1,
        'l': 1000,
        'cup': 240,
        'tbsp': 15,
        'tsp': 5,
        'fl-oz': 30,
        'pint': 473,
        'quart': 946,
        'gallon': 3785,
    },
    'weight': {
        'g': 1,
        'kg': 1000,
        'oz': 28.35,
        'lb': 453.59,
    },
}

GRAMS_PER_OUNCE = 28.35
ML_PER_FLUID_OUNCE = 30
ML_PER_TEASPOON = 5

UNIT_SYSTEM_STORAGE_KEY = 'unitSystem'


class UnitSystem(Enum):
    """Unit systems a user can display recipes in"""
    ORIGINAL = "original"
    METRIC = "metric"
    IMPERIAL = "imperial"

    @classmethod
    def from_value(cls, value: Optional[str]) -> 'UnitSystem':
        """Parse a stored value, falling back to ORIGINAL"""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or '').lower())
        except ValueError:
            return cls.ORIGINAL


@dataclass(frozen=True)
class ConvertedUnit:
    amount: float
    unit: str


def get_unit_category(unit: str) -> Optional[str]:
    """Return 'weight', 'volume' or None for units that cannot be converted"""
    lower = (unit or '').lower()
    if lower in UNIT_CONVERSIONS['weight']:
        return 'weight'
    if lower in UNIT_CONVERSIONS['volume']:
        return 'volume'
    return None


def _to_base(amount: float, unit: str, category: str) -> float:
    factor = UNIT_CONVERSIONS[category].get(unit.lower())
    return amount * (factor or 1)


def convert_unit(amount: float, unit: str, target_system) -> ConvertedUnit:
    """
    Convert an amount to the target unit system.

    ORIGINAL, a zero/missing amount, or an unrecognized unit return the input
    unchanged.
    """
    system = UnitSystem.from_value(target_system)
    if system is UnitSystem.ORIGINAL or not amount or not unit:
        return ConvertedUnit(amount, unit)

    category = get_unit_category(unit)
    if category is None:
        return ConvertedUnit(amount, unit)

    base_amount = _to_base(amount, unit, category)

    if system is UnitSystem.METRIC:
        if category == 'weight':
            if base_amount >= 1000:
                return ConvertedUnit(base_amount / 1000, 'kg')
            return ConvertedUnit(base_amount, 'g')
        if base_amount >= 1000:
            return ConvertedUnit(base_amount / 1000, 'l')
        return ConvertedUnit(base_amount, 'ml')

    # Imperial
    if category == 'weight':
        ounces = base_amount / GRAMS_PER_OUNCE
        if ounces >= 16:
            return ConvertedUnit(ounces / 16, 'lb')
        return ConvertedUnit(ounces, 'oz')

    fluid_ounces = base_amount / ML_PER_FLUID_OUNCE
    if fluid_ounces >= 128:
        return ConvertedUnit(fluid_ounces / 128, 'gallon')
    if fluid_ounces >= 8:
        return ConvertedUnit(fluid_ounces / 8, 'cup')
    if fluid_ounces >= 1:
        return ConvertedUnit(fluid_ounces, 'fl-oz')
    return ConvertedUnit(base_amount / ML_PER_TEASPOON, 'tsp')


def scale_amount(amount: float, multiplier: Optional[float]) -> float:
    """Scale a recipe amount by a serving multiplier (unspecified stays 0)"""
    if not amount:
        return 0.0
    return amount * (multiplier if multiplier else 1.0)


def format_amount(amount: float) -> str:
    """Display an amount rounded to 2 decimals; 0 displays as empty"""
    if not amount:
        return ''
    rounded = round(amount * 100) / 100
    return f"{rounded:g}" if rounded != int(rounded) else str(int(rounded))


def format_ingredient_line(amount: float, unit: str, name: str, target_system=UnitSystem.ORIGINAL,
                           multiplier: Optional[float] = None) -> str:
    """
    Render an ingredient line the way recipe cards show it: scaled,
    converted, rounded. The 'whole' unit is not printed.
    """
    converted = convert_unit(scale_amount(amount, multiplier), unit, target_system)
    parts = []
    if converted.amount:
        parts.append(format_amount(converted.amount))
    if converted.unit and converted.unit != 'whole':
        parts.append(converted.unit)
    parts.append(name)
    return ' '.join(parts)


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    return (fahrenheit - 32) * 5 / 9


def get_unit_system(store) -> UnitSystem:
    """Read the saved unit system preference from a key/value store"""
    try:
        return UnitSystem.from_value(store.get(UNIT_SYSTEM_STORAGE_KEY))
    except Exception as e:
        logger.warning(f"Failed to read unit system preference: {e}")
        return UnitSystem.ORIGINAL


def set_unit_system(store, system) -> UnitSystem:
    """Persist the unit system preference"""
    unit_system = UnitSystem.from_value(system)
    store.set(UNIT_SYSTEM_STORAGE_KEY, unit_system.value)
    return unit_system

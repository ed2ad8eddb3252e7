"""
units.py — Quantity parsing and unit normalization.

Converts user-entered quantity + unit pairs into canonical units:
- volume → liters (accepts "liters", "ml")
- mass   → kilograms (accepts "kg", "g")

All functions are pure. Unconvertible input yields None, never an exception.
"""

import math
import re
from typing import Optional

VOLUME_UNITS = ('liters', 'ml')
MASS_UNITS = ('kg', 'g')

# Leading decimal number, same prefix rule as a form field parser:
# "10" → 10, "2.5kg" → 2.5, ".5" → 0.5, "abc" → no match
_NUMBER_PREFIX = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


def parse_number(value) -> Optional[float]:
    """
    Parse a quantity entered by the user.

    Numbers pass through as floats. Strings are parsed from their leading
    numeric prefix. Anything else, including NaN and infinity, returns None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        num = float(value)
    else:
        match = _NUMBER_PREFIX.match(str(value))
        if not match:
            return None
        num = float(match.group(1))

    if math.isnan(num) or math.isinf(num):
        return None
    return num


def to_liters(value, unit) -> Optional[float]:
    """Convert a volume quantity to liters. Mass or unknown units give None."""
    num = parse_number(value)
    if num is None:
        return None
    if unit == 'liters':
        return num
    if unit == 'ml':
        return num / 1000
    return None


def to_kilograms(value, unit) -> Optional[float]:
    """Convert a mass quantity to kilograms. Volume or unknown units give None."""
    num = parse_number(value)
    if num is None:
        return None
    if unit == 'kg':
        return num
    if unit == 'g':
        return num / 1000
    return None


def canonical_unit(unit: str) -> str:
    """Display unit after normalization: "liters", "kg", or the input unchanged."""
    if unit in VOLUME_UNITS:
        return 'liters'
    if unit in MASS_UNITS:
        return 'kg'
    return unit

"""
validators.py – Input coercion for user-entered activity data.

Raw quantities arrive from forms and stored snapshots as numbers, numeric
strings ("1,250", "$300"), blanks, or garbage. Nothing here raises: a value
that cannot be read as a finite, non-negative number becomes 0 so that the
rest of the inventory still calculates.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Any, Mapping

from ghg_engine.constants import ACTIVITY_ALIASES

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _to_float(value: Any) -> float | None:
    """
    Try to convert *value* to float.

    Strips commas, spaces, and common currency prefixes/suffixes before
    conversion.  Returns None on failure.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[,$€£¥\s]", "", value)
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def coerce_quantity(value: Any) -> float:
    """Return *value* as a finite float >= 0; anything else becomes 0.0."""
    number = _to_float(value)
    if number is None or not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_percentage(value: Any, default: float | None = None) -> float:
    """
    Coerce to a percentage clamped to [0, 100].

    When *default* is given, a value that is not a number at all (blank,
    None, "abc") returns *default* instead of 0.
    """
    if default is not None and _to_float(value) is None:
        return default
    return min(coerce_quantity(value), 100.0)


def coerce_year(value: Any, default: int) -> int:
    """Return *value* as an int year, or *default* when unreadable."""
    number = _to_float(value)
    if number is None or not math.isfinite(number) or number <= 0:
        return default
    return int(number)


def canonical_input_id(input_id: str) -> str:
    """Map legacy camelCase input ids onto their snake_case form."""
    return ACTIVITY_ALIASES.get(input_id, input_id)


def normalise_inputs(raw_inputs: Mapping[str, Any] | None) -> dict[str, float]:
    """
    Coerce every raw input to a non-negative float keyed by canonical id.

    Unknown ids are kept (they simply resolve to zero later). When a legacy
    alias and its canonical id are both present the canonical entry wins.
    """
    if not raw_inputs:
        return {}
    cleaned: dict[str, float] = {}
    for input_id, value in raw_inputs.items():
        key = canonical_input_id(str(input_id))
        if key in cleaned and key == str(input_id):
            cleaned[key] = coerce_quantity(value)
            continue
        if key in cleaned:
            continue
        quantity = coerce_quantity(value)
        if quantity == 0.0 and value not in (None, "", 0, 0.0):
            logger.debug("Input %s=%r coerced to 0", input_id, value)
        cleaned[key] = quantity
    return cleaned

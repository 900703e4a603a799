"""Set input sanitization and parsing.

Reps and weight are stored exactly as typed (strings). Everything that does
arithmetic goes through ``parse_weight`` / ``parse_reps``, which treat empty or
garbage input as zero.
"""

from __future__ import annotations

import re

from app.core.constants import MAX_REPS, MAX_WEIGHT
from app.core.enums import SetField
from app.core.exceptions import InvalidSetValueError

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)")


def sanitize_numeric(value: str) -> str:
    """Keep only digits and the decimal point (so no sign, no units)."""
    return _NON_NUMERIC.sub("", value or "")


def _leading_float(value: str) -> float | None:
    match = _LEADING_NUMBER.match(value or "")
    if not match:
        return None
    return float(match.group(1))


def sanitize_set_value(field: SetField, value: str) -> str:
    """Return the value to store for ``field``, or raise if it is over the cap."""
    sanitized = sanitize_numeric(value)
    if sanitized:
        number = _leading_float(sanitized)
        if number is not None:
            if field == SetField.WEIGHT and number > MAX_WEIGHT:
                raise InvalidSetValueError(f"Weight {sanitized} exceeds {MAX_WEIGHT}")
            if field == SetField.REPS and number > MAX_REPS:
                raise InvalidSetValueError(f"Reps {sanitized} exceeds {MAX_REPS}")
    return sanitized


def parse_weight(value: str | None) -> float:
    number = _leading_float(value or "")
    return number if number is not None else 0.0


def parse_reps(value: str | None) -> int:
    number = _leading_float(value or "")
    return int(number) if number is not None else 0


def format_weight(weight: float) -> str:
    """185.0 -> "185", 187.5 -> "187.5"."""
    if float(weight).is_integer():
        return str(int(weight))
    return f"{weight:.2f}".rstrip("0").rstrip(".")

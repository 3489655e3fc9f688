"""Parsing helpers for dimension strings found on drawings.

Vision models return dimensions the way drawings print them ("12'-6\"",
"16\" O.C.", "25 GA"). These helpers coerce them to numbers and return None
when a value cannot be read, leaving the decision to the caller.
"""
import re
from typing import Any, Optional

_FEET_INCHES = re.compile(
    r"""^\s*(?P<feet>\d+(?:\.\d+)?)\s*(?:'|ft\.?|feet)\s*(?:-?\s*(?P<inches>\d+(?:\.\d+)?)\s*(?:"|''|in\.?|inches)?)?\s*$""",
    re.IGNORECASE,
)
_INCHES_ONLY = re.compile(
    r"""^\s*(?P<inches>\d+(?:\.\d+)?)\s*(?:"|''|in\.?|inches)\s*$""",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"\d+(?:\.\d+)?")

# Values a model uses to say "nothing here"
NONE_WORDS = {"", "none", "n/a", "na", "no", "null", "-", "--", "tbd", "unknown", "false"}


def is_blank(value: Any) -> bool:
    """True for None and for strings that only say 'nothing here'."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in NONE_WORDS
    return False


def parse_feet(value: Any) -> Optional[float]:
    """Parse a length in feet.

    Examples:
        12.5 -> 12.5
        "12.5" -> 12.5
        "12'-6\"" -> 12.5
        "10 ft" -> 10.0
        "18\"" -> 1.5
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str) or is_blank(value):
        return None

    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass

    match = _FEET_INCHES.match(text)
    if match:
        feet = float(match.group("feet"))
        inches = float(match.group("inches")) if match.group("inches") else 0.0
        return feet + inches / 12.0

    match = _INCHES_ONLY.match(text)
    if match:
        return float(match.group("inches")) / 12.0

    return None


def parse_number(value: Any) -> Optional[float]:
    """Pull the first number out of a value ("16\" O.C." -> 16.0, "85%" -> 85.0)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str) or is_blank(value):
        return None
    match = _NUMBER.search(value)
    return float(match.group(0)) if match else None


def parse_int(value: Any) -> Optional[int]:
    """Like parse_number, truncated to an int ("25 GA" -> 25)."""
    number = parse_number(value)
    return int(number) if number is not None else None

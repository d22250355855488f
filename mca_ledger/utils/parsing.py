"""Cell coercion helpers for spreadsheet values"""

import math
import re
from typing import Any, Optional, Sequence

_NUMBER_NOISE = re.compile(r"[$,%\s]")

_FALSY_TEXT = {"false", ""}
_TRUTHY_TEXT = {"true", "yes", "y", "t", "1", "on", "active"}


def is_blank(value: Any) -> bool:
    """True for cells that carry no information (None, empty text, boolean false, "FALSE")"""
    if value is None or value is False:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip().lower() in _FALSY_TEXT:
        return True
    return False


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a numeric cell.

    Returns None when the cell is blank or not a number. Currency symbols, thousands
    separators, percent signs and whitespace are ignored.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    cleaned = _NUMBER_NOISE.sub("", str(value))
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_text(value: Any, default: Optional[str] = "") -> Optional[str]:
    """Stringify a text cell, resolving blank/FALSE cells to ``default``"""
    if is_blank(value):
        return default
    text = str(value).strip()
    return text if text else default


def parse_identifier(value: Any) -> Optional[str]:
    """Identifier cells may arrive as floats (``1042.0``); render those without the fraction"""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def is_empty_row(row: Sequence[Any]) -> bool:
    return all(cell is None or (isinstance(cell, str) and not cell.strip()) for cell in row)


def parse_flag(value: Any) -> bool:
    """Interpret a yes/no cell; anything unrecognised is False"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY_TEXT

"""JSON-ready rendering of domain objects.

Output is deterministic for a given input: field order follows the dataclass
definitions, enums render as their values and dates as ISO strings.
"""

from dataclasses import fields, is_dataclass
from datetime import date
from enum import Enum
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, enums, dates and containers into plain JSON types"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else str(k)): to_jsonable(v) for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [to_jsonable(item) for item in value]
        return sorted(items) if isinstance(value, (set, frozenset)) else items
    return value

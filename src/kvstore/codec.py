"""JSON value codec shared by all backends."""

import json
from typing import Any


def encode(value: Any) -> str:
    """Serialize a value to the JSON text stored in the ``value`` column."""
    return json.dumps(value, allow_nan=False)


def decode(text: str) -> Any:
    """Deserialize JSON text read from storage."""
    return json.loads(text)


def is_number(value: Any) -> bool:
    """Return True for values the clamp rule applies to.

    Booleans are ints in Python but JSON booleans, so they are excluded.
    """
    return isinstance(value, (int, float)) and not isinstance(value, bool)

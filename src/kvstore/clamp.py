"""Numeric clamping applied on writes."""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from kvstore.codec import is_number

Number = Union[int, float]


class ClampSettings(BaseModel):
    """Optional bounds for numeric values.

    Attributes:
        min: Lower bound, applied first
        max: Upper bound, applied last so it wins when min > max
    """

    model_config = ConfigDict(frozen=True)

    min: Optional[Number] = None
    max: Optional[Number] = None

    @property
    def is_empty(self) -> bool:
        """True when neither bound is set."""
        return self.min is None and self.max is None


def clamp(value: Any, settings: Optional[ClampSettings] = None) -> Any:
    """Bound a numeric value by the given settings.

    Non-numeric values and missing settings pass through unchanged.

    Args:
        value: Value about to be written
        settings: Optional min/max bounds

    Returns:
        ``min(max(value, settings.min), settings.max)`` for numbers, else ``value``

    Example:
        >>> clamp(20, ClampSettings(max=10))
        10
        >>> clamp("20", ClampSettings(max=10))
        '20'
    """
    if settings is None or not is_number(value):
        return value
    if settings.min is not None:
        value = max(value, settings.min)
    if settings.max is not None:
        value = min(value, settings.max)
    return value

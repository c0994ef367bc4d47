"""
Shared request/response schema helpers.

The web client speaks camelCase JSON while the Python side uses snake_case
attributes; ``CamelModel`` maps between the two.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel


def to_camel(name: str) -> str:
    """``min_length`` -> ``minLength``"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class CamelModel(BaseModel):
    """Base model with camelCase aliases that also accepts field names."""

    class Config:
        alias_generator = to_camel
        allow_population_by_field_name = True


def number_in_range(value: Any, field: str, low: float, high: float) -> float:
    """
    Check that ``value`` is a finite number within ``[low, high]``.

    Raises:
        ValueError: With a client-facing message
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{field} must be a valid number")
    if value < low or value > high:
        raise ValueError(f"{field} must be between {low} and {high}")
    return value


def optional_number(value: Any, field: str) -> Optional[float]:
    """Accept ``None`` or a finite, non-negative number."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{field} must be a valid number")
    if value < 0:
        raise ValueError(f"{field} cannot be negative")
    return value

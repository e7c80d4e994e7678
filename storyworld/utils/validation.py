"""Input validation utilities for stores and services.

This module provides reusable validation functions that raise clear
ValueError or TypeError exceptions for invalid inputs, plus small
numeric helpers shared by the stores.
"""

import math
import re
from typing import Any

from pydantic.alias_generators import to_camel


def validate_not_empty(value: str | None, param_name: str) -> None:
    """Validate that a string parameter is not None or empty.

    Args:
        value: The string value to validate
        param_name: Name of the parameter for error messages

    Raises:
        ValueError: If value is None, empty string, or only whitespace
    """
    if value is None:
        raise ValueError(f"Parameter '{param_name}' cannot be None")
    if not isinstance(value, str):
        raise TypeError(f"Parameter '{param_name}' must be a string, got {type(value).__name__}")
    if not value.strip():
        raise ValueError(f"Parameter '{param_name}' cannot be empty")


def validate_in_range(
    value: int | float | None,
    param_name: str,
    min_val: int | float | None = None,
    max_val: int | float | None = None,
) -> None:
    """Validate that a numeric parameter is within a specified range.

    Args:
        value: The numeric value to validate
        param_name: Name of the parameter for error messages
        min_val: Minimum allowed value (inclusive), None for no minimum
        max_val: Maximum allowed value (inclusive), None for no maximum

    Raises:
        ValueError: If value is None or not in range
        TypeError: If value is not int or float
    """
    if value is None:
        raise ValueError(f"Parameter '{param_name}' cannot be None")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Parameter '{param_name}' must be numeric, got {type(value).__name__}")
    if not math.isfinite(value):
        raise ValueError(f"Parameter '{param_name}' must be finite, got {value}")
    if min_val is not None and value < min_val:
        raise ValueError(f"Parameter '{param_name}' must be >= {min_val}, got {value}")
    if max_val is not None and value > max_val:
        raise ValueError(f"Parameter '{param_name}' must be <= {max_val}, got {value}")


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value into [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def is_number(value: Any) -> bool:
    """Return True for finite int/float values, excluding bool.

    JSON decoding accepts NaN and Infinity literals, so collaborator output
    can carry them; they never count as numbers here.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def normalize_key(name: str) -> str:
    """Lowercase a name and strip everything but letters and digits.

    "GLOBAL_TENSION", "global-tension" and "globalTension" all normalize
    to "globaltension".
    """
    return re.sub(r"[^a-z0-9]", "", name.lower())


def slugify(name: str) -> str:
    """Turn a display name into an id-style slug ("Old Mill" -> "old_mill")."""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def lookup(data: dict[str, Any], field_name: str, default: Any = None) -> Any:
    """Read a field from a raw payload that may use snake_case or camelCase keys.

    Args:
        data: Raw payload dict.
        field_name: Field name in snake_case.
        default: Value returned when neither spelling is present.

    Returns:
        The stored value or default.
    """
    if field_name in data:
        return data[field_name]
    camel = to_camel(field_name)
    if camel in data:
        return data[camel]
    return default

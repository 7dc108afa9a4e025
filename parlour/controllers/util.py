"""Coercion of JSON payload values."""

import math
from typing import Any, List


def as_int(value: Any, field: str) -> int:
    """Interpret ``value`` as an integer, as in ``"12"`` or ``12``."""
    if isinstance(value, bool):
        raise ValueError(f'{field} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f'{field} must be an integer') from e


def as_float(value: Any, field: str) -> float:
    """Interpret ``value`` as a number."""
    if isinstance(value, bool):
        raise ValueError(f'{field} must be a number')
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f'{field} must be a number') from e
    if not math.isfinite(result):
        raise ValueError(f'{field} must be a number')
    return result


def as_bool(value: Any) -> bool:
    """Interpret ``value`` as a flag; ``"false"`` and ``"0"`` are false."""
    if isinstance(value, str):
        return value.strip().lower() not in ('', '0', 'false', 'no')
    return bool(value)


def as_list(value: Any, field: str) -> List[Any]:
    """Interpret ``value`` as a list; missing means empty."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f'{field} must be a list')
    return value

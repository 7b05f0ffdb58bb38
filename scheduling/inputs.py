from __future__ import annotations

from .errors import InvalidInputError


def coerce_id(value, label: str) -> int:
    """
    Accept positive integer ids (or their string form) and nothing else.
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid {label} id.")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"Invalid {label} id.")
    return value


def coerce_quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError("Quantity must be an integer.")
    if value <= 0:
        raise InvalidInputError("Quantity must be greater than zero.")
    return value

"""Model-level validation utilities for data integrity.

Provides reusable validators that enforce business rules at the ORM level,
preventing invalid data from reaching the database regardless of which
API endpoint or service writes the data.
"""

import re
from decimal import Decimal

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None:
        v = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if v <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value


def percentage(key: str, value):
    """Validate that a value is between 0 and 100 inclusive."""
    if value is not None:
        v = float(value)
        if v < 0 or v > 100:
            raise ValueError(f"{key} must be between 0 and 100, got {value}")
    return value


def day_of_week(key: str, value):
    """Validate a weekday index, 0 = Sunday through 6 = Saturday."""
    if value is not None and not 0 <= int(value) <= 6:
        raise ValueError(f"{key} must be between 0 and 6, got {value}")
    return value


def clock_time(key: str, value):
    """Validate a 24h "HH:MM" wall-clock string."""
    if value is not None and not _HHMM.match(value):
        raise ValueError(f"{key} must be in HH:MM format, got {value!r}")
    return value


def validate_list(key: str, value):
    """Validate that a JSON column value is a list (or None)."""
    if value is not None and not isinstance(value, list):
        raise ValueError(f"{key} must be a list, got {type(value).__name__}")
    return value

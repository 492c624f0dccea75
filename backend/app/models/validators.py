"""Column validators shared by the ordering models.

Used from ``@validates`` hooks so a bad price, quantity or status is refused
at flush time no matter which service wrote it.
"""

from decimal import Decimal


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def non_negative(key: str, value):
    """Prices, fees and totals: zero allowed."""
    if value is not None and _as_decimal(value) < 0:
        raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    """Quantities and capacities."""
    if value is not None and _as_decimal(value) <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def validate_dict(key: str, value):
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"{key} must be a JSON object, got {type(value).__name__}")
    return value


def one_of(key: str, value, allowed):
    """Status vocabularies (session, desk, order)."""
    if value is not None and value not in allowed:
        raise ValueError(f"{key} must be one of {sorted(allowed)}, got {value!r}")
    return value

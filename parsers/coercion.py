"""
Type coercion shared by catalog import and export.

Every parse_* function here has a format_* counterpart, and the export
serializer only uses the format_* side, so exported files read back into
the same values.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, TypeVar

E = TypeVar("E", bound=Enum)

# Accepted spellings for boolean columns (export writes the first of each)
TRUTHY_VALUES = ("yes", "true", "y", "1", "on")
FALSY_VALUES = ("no", "false", "n", "0", "off")

_DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_CENTS = Decimal("100")


class CoercionError(ValueError):
    """Raised when a cell cannot be converted to its column type."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ===================
# PARSING
# ===================

def parse_decimal(text: str, label: str = "value") -> Decimal:
    """
    Parse plain decimal text.

    Accepts "125", "125.00", ".5", "-3". Rejects thousands separators,
    exponents, NaN and infinity.
    """
    cleaned = str(text).strip()
    if not _DECIMAL_PATTERN.match(cleaned):
        raise CoercionError(f"Invalid {label}: '{text}' is not a number")
    return Decimal(cleaned)


def parse_money(text: str, label: str = "price") -> int:
    """
    Parse a major-unit amount into integer minor units.

    "125.00" -> 12500, "0.005" -> 1 (half away from zero).
    """
    amount = parse_decimal(text, label)
    if amount < 0:
        raise CoercionError(f"Invalid {label}: must not be negative")
    return int((amount * _CENTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_measurement(text: str, label: str = "measurement") -> Decimal:
    """Parse a non-negative decimal measurement."""
    value = parse_decimal(text, label)
    if value < 0:
        raise CoercionError(f"Invalid {label}: must not be negative")
    return value


def parse_count(text: str, label: str = "count") -> int:
    """Parse a non-negative whole number ("7" or "7.0")."""
    value = parse_measurement(text, label)
    if value != value.to_integral_value():
        raise CoercionError(f"Invalid {label}: must be a whole number")
    return int(value)


def parse_enum(text: str, vocabulary: type[E], label: str) -> E:
    """Match text case-insensitively against a closed vocabulary."""
    normalized = str(text).strip().lower()
    for member in vocabulary:
        if member.value.lower() == normalized:
            return member
    accepted = ", ".join(member.value for member in vocabulary)
    raise CoercionError(f"Invalid {label}: '{text}' (accepted: {accepted})")


def parse_flag(text: str, label: str = "flag") -> bool:
    """Parse a boolean from the fixed truthy/falsy vocabulary."""
    normalized = str(text).strip().lower()
    if normalized in TRUTHY_VALUES:
        return True
    if normalized in FALSY_VALUES:
        return False
    raise CoercionError(
        f"Invalid {label}: '{text}' (accepted: {', '.join(TRUTHY_VALUES + FALSY_VALUES)})"
    )


# ===================
# FORMATTING
# ===================

def format_money(minor_units: Optional[int]) -> str:
    """12500 -> "125.00"; None -> ""."""
    if minor_units is None:
        return ""
    amount = (Decimal(int(minor_units)) / _CENTS).quantize(Decimal("0.01"))
    return f"{amount:f}"


def format_decimal(value) -> str:
    """Decimal("1.250") -> "1.25"; None -> ""."""
    if value is None:
        return ""
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    if not number.is_finite():
        raise CoercionError(f"Cannot format non-finite number: {value}")
    normalized = number.normalize()
    return f"{normalized:f}"


def format_count(value: Optional[int]) -> str:
    if value is None:
        return ""
    return str(int(value))


def format_enum(member) -> str:
    """Vocabulary label of an enum member (plain strings pass through)."""
    if member is None:
        return ""
    if isinstance(member, Enum):
        return member.value
    return str(member)


def format_flag(value: Optional[bool]) -> str:
    if value is None:
        return ""
    return TRUTHY_VALUES[0] if value else FALSY_VALUES[0]

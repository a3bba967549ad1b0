"""Money arithmetic helpers.

Historical balances are obtained by subtracting many line amounts from a
live figure. With binary floats each subtraction could drift by a fraction
of a paisa and the accounting identity would stop holding exactly, so every
amount in ledgerbook is a :class:`decimal.Decimal`.

Example:
    Normalise input from a record and compare at currency precision::

        from ledgerbook.decimal_utils import is_zero, to_decimal

        difference = to_decimal(record["debit"]) - to_decimal(record["credit"])
        balanced = is_zero(difference)
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

# Two decimal places: paise / cents
CURRENCY_EXPONENT = Decimal("0.01")

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Numeric = Union[Decimal, float, int, str]


def to_decimal(value: Union[Numeric, None]) -> Decimal:
    """Coerce a record value to Decimal.

    ``None`` (a blank debit or credit cell) is zero. Floats go through
    ``str`` after rounding so that ``0.1`` becomes ``Decimal('0.1')``.

    Raises:
        TypeError: For booleans, which ``Decimal`` would otherwise accept as 0/1.

    Example:
        >>> to_decimal(250.1)
        Decimal('250.1')
        >>> to_decimal(None)
        Decimal('0.00')
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean values are not money")
    if isinstance(value, float):
        return Decimal(str(round(value, 10)))
    return Decimal(value)


def quantize_currency(value: Numeric, places: int = 2) -> Decimal:
    """Round half up to ``places`` decimal places.

    Example:
        >>> quantize_currency(Decimal("2879.995"))
        Decimal('2880.00')
    """
    exponent = CURRENCY_EXPONENT if places == 2 else Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def is_zero(value: Numeric) -> bool:
    """True when the value rounds to zero at currency precision."""
    return quantize_currency(value) == ZERO


def safe_divide(
    numerator: Numeric,
    denominator: Numeric,
    default: Optional[Decimal] = None,
) -> Optional[Decimal]:
    """Divide, or return ``default`` when the denominator is zero.

    Ratios over an empty book have nothing to divide by; they report
    "not applicable" rather than raising or producing an infinity.

    Example:
        >>> safe_divide(15000, 5000)
        Decimal('3')
        >>> safe_divide(15000, 0) is None
        True
    """
    denominator = to_decimal(denominator)
    if denominator == ZERO:
        return default
    return to_decimal(numerator) / denominator

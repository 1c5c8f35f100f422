"""DTO utilities for the service layer.

Numeric conversion and display formatting. The engine keeps full Decimal
precision internally; rounding happens only in the *_to_string helpers.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from src.utils.config import get_config
from src.utils.constants import QUANTITY_DECIMAL_PLACES

Number = Union[Decimal, float, int, str]

ZERO = Decimal("0")


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert a numeric value to Decimal without binary float artifacts.

    Floats go through str() so 0.1 becomes Decimal("0.1").

    Args:
        value: Numeric value (Decimal, float, int, str, or None)

    Returns:
        Decimal value; Decimal("0") for None

    Raises:
        ValueError: If the value is not numeric

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal(None)
        Decimal('0')
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def _quantize(value: Union[Number, None], places: int) -> str:
    decimal_value = to_decimal(value)
    exponent = Decimal(1).scaleb(-places)
    return str(decimal_value.quantize(exponent, rounding=ROUND_HALF_UP))


def cost_to_string(value: Union[Number, None], places: Optional[int] = None) -> str:
    """
    Convert a cost value to a fixed-decimal string.

    Uses the configured display precision unless places is given.

    Examples:
        >>> cost_to_string(Decimal("12.345"))
        '12.35'
        >>> cost_to_string(None)
        '0.00'
    """
    if places is None:
        places = get_config().display_decimal_places
    return _quantize(value, places)


def quantity_to_string(value: Union[Number, None], places: int = QUANTITY_DECIMAL_PLACES) -> str:
    """
    Convert an ingredient quantity to a fixed-decimal string.

    Examples:
        >>> quantity_to_string(Decimal("0.33333"))
        '0.333'
    """
    return _quantize(value, places)

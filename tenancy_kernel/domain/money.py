"""Money helpers.

All monetary arithmetic is done in ``Decimal``.  Values are rounded to
pence (half-up) only when they leave a calculation: stored on a row,
returned to a caller, or placed in an error payload.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from tenancy_kernel.exceptions import InvalidAmountError

ZERO = Decimal("0")
PENNY = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using half-up rounding."""
    return Decimal(value).quantize(PENNY, rounding=ROUND_HALF_UP)


def to_money(value: Any, field: str = "amount", *, allow_zero: bool = True,
             allow_negative: bool = False) -> Decimal:
    """
    Coerce caller input to a Decimal amount.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` and not
    its binary expansion.

    Raises:
        InvalidAmountError: non-numeric, non-finite, or outside the allowed
            sign range.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(field, value, "must be a number")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(field, value, "must be a number") from None
    if not amount.is_finite():
        raise InvalidAmountError(field, value, "must be finite")
    if amount < 0 and not allow_negative:
        raise InvalidAmountError(field, value, "must not be negative")
    if amount == 0 and not allow_zero:
        raise InvalidAmountError(field, value, "must be greater than zero")
    return amount


def format_gbp(value: Decimal) -> str:
    """Render an amount for notification text, e.g. ``£1,050.00``."""
    return f"£{round_money(value):,.2f}"

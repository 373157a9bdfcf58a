"""
Module: payroll_kernel.db.types
Responsibility: Money constants and the single rounding helper for salary
    amounts.  Every model, helper and service uses identical money
    precision and rounding.

Invariants enforced:
    - No floats anywhere in the payroll core.  All amounts are Decimal.
    - round_money() is the ONLY sanctioned rounding function; salary
      amounts are rounded to AMOUNT_DECIMAL_PLACES with ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal

AMOUNT_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Decimal | int | str | None) -> Decimal | None:
    """Coerce user/config input to Decimal without going through float."""
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(
    value: Decimal,
    decimal_places: int = AMOUNT_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized with ROUND_HALF_UP by default.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)

"""
Module: pos_kernel.db.types
Responsibility: Precision constants and conversion functions for money and
    quantity columns.  Centralizes precision and rounding so that every model,
    domain function and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Fixed-point money: MONEY_DECIMAL_PLACES (2) is the canonical precision.
      round_money() is the ONLY sanctioned rounding function, and it always
      rounds half-up.
    - No floats anywhere in the kernel.  All monetary amounts use Decimal.
    - MAX_MONEY is the largest amount a BigInteger minor-unit column holds;
      anything larger is rejected at the boundary.

Failure modes:
    - ValueError from money_to_minor_units() on sub-cent precision.
"""

from decimal import Decimal, ROUND_HALF_UP


# Rounding constants
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")

# 2**63 - 1 minor units
MAX_MONEY = Decimal("92233720368547758.07")


def money_from_minor_units(value: int) -> Decimal:
    """
    Create a Money value from integer minor units (e.g. kobo, cents).

    Example:
        money_from_minor_units(322500) -> Decimal("3225.00")
    """
    return round_money(Decimal(value).scaleb(-MONEY_DECIMAL_PLACES))


def money_to_minor_units(value: Decimal) -> int:
    """
    Convert a Money value to integer minor units.

    Raises:
        ValueError: If value carries more precision than MONEY_DECIMAL_PLACES.
    """
    scaled = Decimal(value).scaleb(MONEY_DECIMAL_PLACES)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Amount {value} has more than {MONEY_DECIMAL_PLACES} decimal places"
        )
    return int(scaled)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the ONLY sanctioned rounding function for money in the kernel.
    Apply it once, where a sub-computation crosses a money boundary (e.g.
    tax = subtotal x rate); never re-round an already-rounded amount.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "0"
    return value.quantize(Decimal(quantize_str), rounding=rounding)

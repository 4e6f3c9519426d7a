"""
Values -- Fixed-point money and quantity primitives for sales.

Responsibility:
    Parses caller-supplied amounts and quantities at the kernel boundary and
    provides the arithmetic that turns line items into subtotal, tax and
    total.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by cart, assembly and aggregation.  No outward dependencies
    except db/types (rounding constants) and exceptions.

Invariants enforced:
    - Money is Decimal with two fractional digits; binary floats are refused
      at the boundary rather than converted.
    - Rounding is ROUND_HALF_UP via round_money(), applied once where a
      computation crosses a money boundary: line amounts are exact, the
      subtotal is an exact sum, tax = round(subtotal x rate) is the single
      rounding step, total = subtotal + tax is exact.
    - Quantities are positive integers.  Zero or negative is an error, never
      a silently dropped line.
    - Amounts stay within MAX_MONEY and quantities within MAX_QUANTITY, the
      ranges of the BigInteger columns they are stored in.

Failure modes:
    - CartValidationError (single FieldError) on any unparseable value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from pos_kernel.db.types import MAX_MONEY, MONEY_DECIMAL_PLACES, ZERO, round_money
from pos_kernel.exceptions import CartValidationError, FieldError

# stock is a BigInteger column
MAX_QUANTITY = 2**63 - 1


def parse_money(value: Any, field: str) -> Decimal:
    """
    Parse a non-negative fixed-point amount.

    Accepts Decimal, int, or a numeric string such as "1000" or "1000.50".

    Raises:
        CartValidationError: for floats, bools, non-numeric or non-finite
            values, negative amounts, amounts above MAX_MONEY, or more than
            two decimal places.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise CartValidationError([
            FieldError(field, "must be a fixed-point string or integer, not a float"),
        ])
    if isinstance(value, (int, Decimal)):
        amount = Decimal(value)
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise CartValidationError([FieldError(field, "is not a number")]) from None
    else:
        raise CartValidationError([FieldError(field, "is required")])

    if not amount.is_finite():
        raise CartValidationError([FieldError(field, "must be finite")])
    if amount < 0:
        raise CartValidationError([FieldError(field, "must not be negative")])
    if amount > MAX_MONEY:
        raise CartValidationError([FieldError(field, "is too large")])
    try:
        rounded = round_money(amount)
    except InvalidOperation:
        raise CartValidationError([FieldError(field, "is not a number")]) from None
    if amount != rounded:
        raise CartValidationError([
            FieldError(field, f"must have at most {MONEY_DECIMAL_PLACES} decimal places"),
        ])
    return rounded


def parse_quantity(value: Any, field: str) -> int:
    """
    Parse a positive integer quantity.

    Raises:
        CartValidationError: unless value is an int (not bool) between 1 and
            MAX_QUANTITY.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise CartValidationError([FieldError(field, "must be a positive integer")])
    if value <= 0:
        raise CartValidationError([FieldError(field, "must be greater than zero")])
    if value > MAX_QUANTITY:
        raise CartValidationError([FieldError(field, "is too large")])
    return value


def line_amount(unit_price: Decimal, quantity: int) -> Decimal:
    """Exact price x quantity; no rounding is needed at two places."""
    return unit_price * quantity


@dataclass(frozen=True)
class Totals:
    """Subtotal, tax and total of one sale."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
        }


def compute_totals(
    amounts: Iterable[Decimal],
    tax_rate: Decimal,
) -> Totals:
    """
    Compute totals from line amounts.

    Postconditions:
        - subtotal == sum(amounts)
        - tax == round_money(subtotal * tax_rate)
        - total == subtotal + tax
    """
    subtotal = round_money(sum(amounts, ZERO))
    tax = round_money(subtotal * tax_rate)
    total = subtotal + tax
    return Totals(subtotal=subtotal, tax=tax, total=total)

"""
Assembly -- Build an invoice draft from a validated cart.

Responsibility:
    Combines typed line items, receipt metadata, the configured tax rate and
    an invoice number into an InvoiceDraft: the complete, not-yet-persisted
    invoice.  Also derives the stock reservations the coordinator must make.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Time comes from an
    injected Clock, the tax rate from the caller.

Invariants enforced:
    - subtotal = sum(unit_price x quantity) over all lines.
    - tax = round_money(subtotal x tax_rate), rounded exactly once.
    - total = subtotal + tax <= MAX_MONEY.
    - Invoice number is the caller's, or prefix + the last N digits of the
      clock's epoch milliseconds.

Failure modes:
    - CartValidationError with every FieldError from cart, metadata and
      invoice number combined.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Mapping, Sequence

from pos_kernel.db.types import MAX_MONEY
from pos_kernel.domain.cart import (
    CatalogLineItem,
    LineItem,
    SaleMetadata,
    parse_cart,
    parse_metadata,
)
from pos_kernel.domain.clock import Clock
from pos_kernel.domain.values import Totals, compute_totals
from pos_kernel.exceptions import CartValidationError, FieldError

INVOICE_NUMBER_MAX_LENGTH = 50
OWNER_ID_MAX_LENGTH = 64

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


@dataclass(frozen=True)
class StockReservation:
    """One stock decrement the coordinator must attempt."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class InvoiceDraft:
    """A fully computed invoice that has not been persisted yet."""

    owner_id: str
    invoice_number: str
    metadata: SaleMetadata
    line_items: tuple[LineItem, ...]
    totals: Totals
    tax_rate: Decimal

    @property
    def reservations(self) -> tuple[StockReservation, ...]:
        """One reservation per catalog line, in cart order."""
        return tuple(
            StockReservation(product_id=item.product_id, quantity=item.quantity)
            for item in self.line_items
            if isinstance(item, CatalogLineItem)
        )

    def line_items_payload(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self.line_items]


def generate_invoice_number(
    clock: Clock,
    prefix: str = "INV-",
    digits: int = 8,
) -> str:
    """
    Derive an invoice number from the clock.

    Example:
        2024-01-01T12:00:00Z is 1704110400000 ms -> "INV-10400000"
    """
    millis = (clock.now_utc() - _EPOCH) // _MILLISECOND
    return f"{prefix}{str(millis)[-digits:]}"


class InvoiceAssembler:
    """
    Turns raw cart input into an InvoiceDraft.

    Contract:
        assemble() either returns a draft whose totals satisfy the invariants
        above, or raises CartValidationError.  Nothing else.
    """

    def __init__(
        self,
        tax_rate: Decimal,
        clock: Clock,
        number_prefix: str = "INV-",
        number_digits: int = 8,
    ):
        self._tax_rate = Decimal(tax_rate)
        self._clock = clock
        self._number_prefix = number_prefix
        self._number_digits = number_digits

    @property
    def tax_rate(self) -> Decimal:
        return self._tax_rate

    def next_invoice_number(self) -> str:
        return generate_invoice_number(
            self._clock, self._number_prefix, self._number_digits
        )

    def assemble(
        self,
        owner_id: str,
        cart: Sequence[Any],
        metadata: Mapping[str, Any] | SaleMetadata,
        invoice_number: str | None = None,
    ) -> InvoiceDraft:
        errors: list[FieldError] = []
        items: tuple[LineItem, ...] = ()
        sale_metadata: SaleMetadata | None = None

        if not isinstance(owner_id, str) or not owner_id:
            errors.append(FieldError("owner_id", "is required"))
        elif len(owner_id) > OWNER_ID_MAX_LENGTH:
            errors.append(FieldError(
                "owner_id", f"must be at most {OWNER_ID_MAX_LENGTH} characters",
            ))

        try:
            items = parse_cart(cart)
        except CartValidationError as exc:
            errors.extend(exc.field_errors)
        try:
            sale_metadata = parse_metadata(metadata)
        except CartValidationError as exc:
            errors.extend(exc.field_errors)

        if invoice_number is not None:
            if not isinstance(invoice_number, str) or not invoice_number.strip():
                errors.append(FieldError("invoice_number", "must not be empty"))
            elif len(invoice_number.strip()) > INVOICE_NUMBER_MAX_LENGTH:
                errors.append(FieldError(
                    "invoice_number",
                    f"must be at most {INVOICE_NUMBER_MAX_LENGTH} characters",
                ))

        if errors:
            raise CartValidationError(errors)

        number = (
            invoice_number.strip()
            if invoice_number is not None
            else self.next_invoice_number()
        )
        totals = compute_totals((item.amount for item in items), self._tax_rate)
        if totals.total > MAX_MONEY:
            raise CartValidationError([FieldError("total", "is too large")])

        return InvoiceDraft(
            owner_id=owner_id,
            invoice_number=number,
            metadata=sale_metadata,
            line_items=items,
            totals=totals,
            tax_rate=self._tax_rate,
        )

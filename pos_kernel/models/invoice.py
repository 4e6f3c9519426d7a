"""
Module: pos_kernel.models.invoice
Responsibility: ORM persistence for invoices.  An invoice is the frozen record
    of one committed sale: display strings, the line items exactly as sold,
    and the fixed-point totals derived from them.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Invoice number unique per owner.  UNIQUE (owner_id, invoice_number)
      is the race-free duplicate detector; there is no check-then-write.
    - total = subtotal + tax.  CHECK constraint over the exact minor-unit
      columns.
    - Write-once.  No service updates an invoice; the before_update
      listener in db/immutability.py rejects any attempt.
    - Historical prices.  line_items stores the unit price submitted at
      sale time, never a live reference to the product row.

Failure modes:
    - IntegrityError on a duplicate (owner_id, invoice_number) or a
      CHECK violation.
    - ImmutabilityViolationError on UPDATE.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pos_kernel.db.base import Base, DecimalString


class Invoice(Base):
    """
    Persistent storage for a committed sale.

    Guarantees:
        - (owner_id, invoice_number) is unique.
        - total = subtotal + tax to the cent.
        - created_at is assigned once, from the injected clock, at insert.
        - line_items is a JSON array of
          {"id", "kind", "name", "price", "quantity", "amount"} with money as
          fixed-point strings.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint(
            "owner_id", "invoice_number", name="uq_invoice_owner_number"
        ),
        CheckConstraint("total = subtotal + tax", name="ck_invoice_total"),
        CheckConstraint("subtotal >= 0 AND tax >= 0", name="ck_invoice_amounts"),
        Index("idx_invoice_owner_created", "owner_id", "created_at"),
    )

    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    issuer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # prices as sold, not as currently listed
    line_items: Mapped[list] = mapped_column(JSON, nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)

    # Rate in force when the sale was made (e.g. Decimal("0.075"))
    tax_rate: Mapped[Decimal] = mapped_column(DecimalString(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Invoice {self.invoice_number}: owner={self.owner_id} "
            f"total={self.total} items={len(self.line_items or [])}>"
        )

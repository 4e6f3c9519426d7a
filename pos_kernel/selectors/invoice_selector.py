"""
Module: pos_kernel.selectors.invoice_selector
Responsibility: Read-only query access to committed invoices.  Converts ORM
    models to InvoiceRecord / InvoiceSnapshot DTOs.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Lists are newest first (created_at desc, then invoice_number desc for
      a stable order between invoices created in the same instant).
    - Date filters are UTC calendar days; ``date_to`` includes the whole day.

Failure modes:
    - get() returns None for unknown or foreign ids.
    - StorageError wrapping any SQLAlchemy error.

Aggregation reads take no locks: they see whatever invoices are committed
when the query runs.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_kernel.db.base import parse_entity_id
from pos_kernel.db.types import ZERO
from pos_kernel.domain.aggregation import InvoiceSnapshot
from pos_kernel.domain.dtos import InvoiceFilter, InvoiceRecord
from pos_kernel.exceptions import StorageError
from pos_kernel.models.invoice import Invoice
from pos_kernel.selectors.base import BaseSelector


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _date_conditions(
    date_from: date | None,
    date_to: date | None,
    year: int | None,
) -> list:
    conditions = []
    if date_from is not None:
        conditions.append(Invoice.created_at >= _start_of(date_from))
    if date_to is not None:
        conditions.append(Invoice.created_at < _start_of(date_to + timedelta(days=1)))
    if year is not None:
        conditions.append(Invoice.created_at >= _start_of(date(year, 1, 1)))
        conditions.append(Invoice.created_at < _start_of(date(year + 1, 1, 1)))
    return conditions


class InvoiceSelector(BaseSelector[Invoice]):
    """
    Selector for invoice queries.

    Contract:
        All record queries return InvoiceRecord instances; rollup inputs are
        returned as InvoiceSnapshot instances carrying only the money fields.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def get(self, owner_id: str, invoice_id: UUID | str) -> InvoiceRecord | None:
        iid = parse_entity_id(invoice_id)
        if iid is None:
            return None
        try:
            invoice = self.session.execute(
                select(Invoice).where(Invoice.id == iid, Invoice.owner_id == owner_id)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("get_invoice", str(exc)) from exc
        return InvoiceRecord.from_model(invoice) if invoice is not None else None

    def number_exists(self, owner_id: str, invoice_number: str) -> bool:
        stmt = select(Invoice.id).where(
            Invoice.owner_id == owner_id,
            Invoice.invoice_number == invoice_number,
        )
        try:
            return self.session.execute(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise StorageError("number_exists", str(exc)) from exc

    def list_by_owner(
        self,
        owner_id: str,
        filters: InvoiceFilter | None = None,
    ) -> list[InvoiceRecord]:
        filters = filters or InvoiceFilter()
        stmt = (
            select(Invoice)
            .where(
                Invoice.owner_id == owner_id,
                *_date_conditions(filters.date_from, filters.date_to, filters.year),
            )
            .order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())
        )
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit)
        try:
            invoices = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("list_invoices", str(exc)) from exc
        return [InvoiceRecord.from_model(inv) for inv in invoices]

    def snapshots(
        self,
        owner_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        year: int | None = None,
    ) -> list[InvoiceSnapshot]:
        """Money fields of the owner's invoices, oldest first."""
        stmt = (
            select(
                Invoice.id,
                Invoice.created_at,
                Invoice.subtotal,
                Invoice.tax,
                Invoice.total,
            )
            .where(
                Invoice.owner_id == owner_id,
                *_date_conditions(date_from, date_to, year),
            )
            .order_by(Invoice.created_at.asc())
        )
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError("invoice_snapshots", str(exc)) from exc
        return [
            InvoiceSnapshot(
                invoice_id=row.id,
                created_at=row.created_at,
                subtotal=row.subtotal,
                tax=row.tax,
                total=row.total,
            )
            for row in rows
        ]

    def available_years(self, owner_id: str) -> list[int]:
        """Distinct UTC years with at least one invoice, newest first."""
        stmt = (
            select(Invoice.created_at)
            .where(Invoice.owner_id == owner_id)
            .order_by(Invoice.created_at.desc())
        )
        try:
            stamps = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("available_years", str(exc)) from exc
        return sorted({stamp.astimezone(timezone.utc).year for stamp in stamps}, reverse=True)

    def sales_summary(self, owner_id: str) -> tuple[Decimal, int]:
        """(sum of invoice totals, invoice count) for the owner."""
        stmt = select(func.sum(Invoice.total), func.count(Invoice.id)).where(
            Invoice.owner_id == owner_id
        )
        try:
            total, count = self.session.execute(stmt).one()
        except SQLAlchemyError as exc:
            raise StorageError("sales_summary", str(exc)) from exc
        return (total if total is not None else ZERO), count

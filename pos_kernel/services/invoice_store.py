"""
InvoiceStore -- Write side of invoice persistence.

Responsibility:
    Inserts an InvoiceDraft as an immutable Invoice row and deletes invoices
    on the owner's request.  There is no update operation.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - Invoice number unique per owner, detected by the UNIQUE constraint at
      flush time, not by a check-then-write.
    - created_at is supplied by the caller (from its injected clock).

Failure modes:
    - DuplicateInvoiceNumberError: the unique constraint fired.
    - InvoiceNotFoundError: delete of an unknown (or another owner's) id.
    - StorageError: any other SQLAlchemy error.

    After DuplicateInvoiceNumberError or StorageError from insert(), the
    session's transaction is unusable; the caller must roll back.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pos_kernel.db.base import parse_entity_id
from pos_kernel.domain.assembly import InvoiceDraft
from pos_kernel.domain.dtos import InvoiceRecord
from pos_kernel.exceptions import (
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
    StorageError,
)
from pos_kernel.logging_config import get_logger
from pos_kernel.models.invoice import Invoice
from pos_kernel.services.base import BaseService

logger = get_logger("services.invoice_store")

_UNIQUE_NUMBER_CONSTRAINT = "uq_invoice_owner_number"


def _is_duplicate_number(exc: IntegrityError) -> bool:
    # PostgreSQL reports the constraint name; SQLite reports the columns.
    message = str(exc.orig)
    return _UNIQUE_NUMBER_CONSTRAINT in message or (
        "UNIQUE" in message and "invoices.invoice_number" in message
    )


class InvoiceStore(BaseService[Invoice]):
    """Insert and delete invoices for one session."""

    def __init__(self, session: Session):
        super().__init__(session)

    def insert(self, draft: InvoiceDraft, created_at: datetime) -> InvoiceRecord:
        invoice = Invoice(
            owner_id=draft.owner_id,
            invoice_number=draft.invoice_number,
            company_name=draft.metadata.company_name,
            company_address=draft.metadata.company_address,
            company_phone=draft.metadata.company_phone,
            customer_name=draft.metadata.customer_name,
            issuer_name=draft.metadata.issuer_name,
            line_items=draft.line_items_payload(),
            subtotal=draft.totals.subtotal,
            tax=draft.totals.tax,
            total=draft.totals.total,
            tax_rate=draft.tax_rate,
            created_at=created_at,
        )
        self.session.add(invoice)
        try:
            self.session.flush()
        except IntegrityError as exc:
            if _is_duplicate_number(exc):
                logger.warning(
                    "invoice_number_conflict",
                    extra={"invoice_number": draft.invoice_number},
                )
                raise DuplicateInvoiceNumberError(draft.invoice_number) from exc
            raise StorageError("insert_invoice", str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            raise StorageError("insert_invoice", str(exc)) from exc

        logger.info(
            "invoice_inserted",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "total": str(invoice.total),
                "line_count": len(draft.line_items),
            },
        )
        return InvoiceRecord.from_model(invoice)

    def delete(self, owner_id: str, invoice_id: UUID | str) -> None:
        iid = parse_entity_id(invoice_id)
        if iid is None:
            raise InvoiceNotFoundError(str(invoice_id))
        try:
            result = self.session.execute(
                delete(Invoice)
                .where(Invoice.id == iid, Invoice.owner_id == owner_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise StorageError("delete_invoice", str(exc)) from exc

        if result.rowcount == 0:
            raise InvoiceNotFoundError(str(invoice_id))
        logger.info("invoice_deleted", extra={"invoice_id": str(iid)})

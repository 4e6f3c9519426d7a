"""
SaleCoordinator -- the invoice-creation transaction.

Responsibility:
    Drives one sale from raw cart to committed invoice: validate and price
    the cart, reserve stock for catalog lines, persist the invoice, and
    compensate the reservations if persistence fails.  Converts every
    expected failure into a terminal SaleResult.

Architecture position:
    Kernel > Services -- imperative shell, owns transaction boundaries.
    Delegates pricing to the pure InvoiceAssembler and storage to
    CatalogService, InvoiceStore and InvoiceSelector.

Sale flow:
    submit_sale(owner_id, cart, metadata, invoice_number=None)
      1. VALIDATING  parse + assemble + invoice number pre-check.
                     Failure -> REJECTED.  No stock is touched.
      2. RESERVING   one conditional decrement per catalog line, committed
                     together.  Insufficient stock or an unknown product is
                     logged and reported as a StockNotice; the sale goes on
                     (soft stock policy).  Storage failure -> FAILED with
                     nothing reserved.
      3. PERSISTING  insert the invoice and commit.  Any failure rolls the
                     insert back and releases every successful reservation.
                     Unique-constraint race -> REJECTED, otherwise FAILED.

Invariants enforced:
    - Stock is never touched for a sale that fails validation.
    - Every reservation made for a sale that does not commit is released
      (best effort; a failed release is logged, never raised).
    - No automatic retry.

Failure modes:
    - REJECTED: CART_VALIDATION_FAILED, DUPLICATE_INVOICE_NUMBER.
    - FAILED: STORAGE_ERROR.
    - Unexpected exceptions are re-raised after rollback and compensation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Sequence
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_kernel.domain.assembly import InvoiceAssembler, InvoiceDraft, StockReservation
from pos_kernel.domain.cart import SaleMetadata
from pos_kernel.domain.clock import Clock, SystemClock
from pos_kernel.domain.dtos import InvoiceRecord
from pos_kernel.exceptions import (
    CartValidationError,
    DuplicateInvoiceNumberError,
    FieldError,
    InsufficientStockError,
    PosKernelError,
    ProductNotFoundError,
    StorageError,
)
from pos_kernel.logging_config import LogContext, get_logger
from pos_kernel.selectors.invoice_selector import InvoiceSelector
from pos_kernel.services.catalog_service import CatalogService
from pos_kernel.services.invoice_store import InvoiceStore

logger = get_logger("services.sale_coordinator")


class SaleStatus(str, Enum):
    """Terminal outcome of a sale."""

    COMMITTED = "committed"
    REJECTED = "rejected"
    FAILED = "failed"


class SalePhase(str, Enum):
    """Step of the sale transaction."""

    VALIDATING = "validating"
    RESERVING = "reserving"
    PERSISTING = "persisting"


@dataclass(frozen=True)
class StockNotice:
    """A catalog line whose stock could not be reserved."""

    product_id: str
    requested: int
    reason_code: str
    available: int | None = None

    @classmethod
    def from_error(
        cls, reservation: StockReservation, exc: PosKernelError
    ) -> StockNotice:
        return cls(
            product_id=reservation.product_id,
            requested=reservation.quantity,
            reason_code=exc.code,
            available=getattr(exc, "available", None),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
            "reason": self.reason_code,
        }


@dataclass(frozen=True)
class SaleResult:
    """Result of submit_sale()."""

    status: SaleStatus
    invoice: InvoiceRecord | None = None
    stock_notices: tuple[StockNotice, ...] = ()
    phase: SalePhase | None = None
    error_code: str | None = None
    reason: str | None = None
    field_errors: tuple[FieldError, ...] = ()
    retryable: bool = False

    @property
    def is_success(self) -> bool:
        return self.status == SaleStatus.COMMITTED

    @classmethod
    def committed(
        cls, invoice: InvoiceRecord, notices: Sequence[StockNotice]
    ) -> SaleResult:
        return cls(
            status=SaleStatus.COMMITTED,
            invoice=invoice,
            stock_notices=tuple(notices),
        )

    @classmethod
    def rejected(cls, exc: PosKernelError, phase: SalePhase) -> SaleResult:
        return cls(
            status=SaleStatus.REJECTED,
            phase=phase,
            error_code=exc.code,
            reason=str(exc),
            field_errors=tuple(getattr(exc, "field_errors", ())),
            retryable=getattr(exc, "retryable", False),
        )

    @classmethod
    def failed(cls, exc: PosKernelError, phase: SalePhase) -> SaleResult:
        return cls(
            status=SaleStatus.FAILED,
            phase=phase,
            error_code=exc.code,
            reason=str(exc),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "invoice": self.invoice.to_dict() if self.invoice else None,
            "stock_notices": [n.to_dict() for n in self.stock_notices],
            "phase": self.phase.value if self.phase else None,
            "error_code": self.error_code,
            "reason": self.reason,
            "field_errors": [fe.to_dict() for fe in self.field_errors],
            "retryable": self.retryable,
        }


def _as_storage_error(exc: Exception, operation: str) -> StorageError:
    if isinstance(exc, StorageError):
        return exc
    return StorageError(operation, str(exc))


class SaleCoordinator:
    """
    Runs the sale transaction on one session.

    Contract:
        submit_sale() commits on COMMITTED, and leaves nothing behind on
        REJECTED or FAILED except what compensation could not undo (which is
        logged as stock_compensation_failed).
    """

    def __init__(
        self,
        session: Session,
        assembler: InvoiceAssembler,
        clock: Clock | None = None,
    ):
        self._session = session
        self._assembler = assembler
        self._clock = clock or SystemClock()
        self._catalog = CatalogService(session)
        self._store = InvoiceStore(session)
        self._invoices = InvoiceSelector(session)

    def submit_sale(
        self,
        owner_id: str,
        cart: Sequence[Any],
        metadata: Mapping[str, Any] | SaleMetadata,
        invoice_number: str | None = None,
    ) -> SaleResult:
        correlation_id = str(uuid4())
        with LogContext.bind(correlation_id=correlation_id, owner_id=owner_id):
            logger.info(
                "sale_started",
                extra={"requested_number": invoice_number},
            )
            t0 = time.monotonic()

            result = self._do_submit(owner_id, cart, metadata, invoice_number)

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "sale_completed",
                extra={
                    "status": result.status.value,
                    "error_code": result.error_code,
                    "stock_notice_count": len(result.stock_notices),
                    "duration_ms": duration_ms,
                },
            )
            return result

    def _do_submit(
        self,
        owner_id: str,
        cart: Sequence[Any],
        metadata: Mapping[str, Any] | SaleMetadata,
        invoice_number: str | None,
    ) -> SaleResult:
        # 1. Validate
        with LogContext.bind(sale_phase=SalePhase.VALIDATING):
            try:
                draft = self._assembler.assemble(owner_id, cart, metadata, invoice_number)
            except CartValidationError as exc:
                return self._reject(exc, SalePhase.VALIDATING)

        with LogContext.bind(invoice_number=draft.invoice_number):
            with LogContext.bind(sale_phase=SalePhase.VALIDATING):
                try:
                    exists = self._invoices.number_exists(owner_id, draft.invoice_number)
                    self._session.commit()
                except (StorageError, SQLAlchemyError) as exc:
                    self._session.rollback()
                    return self._fail(
                        _as_storage_error(exc, "number_exists"), SalePhase.VALIDATING
                    )
                if exists:
                    return self._reject(
                        DuplicateInvoiceNumberError(draft.invoice_number),
                        SalePhase.VALIDATING,
                    )

            # 2. Reserve
            with LogContext.bind(sale_phase=SalePhase.RESERVING):
                try:
                    reserved, notices = self._reserve(owner_id, draft)
                    self._session.commit()
                except (StorageError, SQLAlchemyError) as exc:
                    self._session.rollback()
                    return self._fail(
                        _as_storage_error(exc, "reserve_stock"), SalePhase.RESERVING
                    )

            # 3. Persist
            with LogContext.bind(sale_phase=SalePhase.PERSISTING):
                try:
                    record = self._store.insert(draft, created_at=self._clock.now_utc())
                    self._session.commit()
                except DuplicateInvoiceNumberError as exc:
                    self._session.rollback()
                    self._compensate(owner_id, reserved)
                    return self._reject(exc, SalePhase.PERSISTING)
                except (StorageError, SQLAlchemyError) as exc:
                    self._session.rollback()
                    self._compensate(owner_id, reserved)
                    return self._fail(
                        _as_storage_error(exc, "insert_invoice"), SalePhase.PERSISTING
                    )
                except Exception:
                    self._session.rollback()
                    self._compensate(owner_id, reserved)
                    logger.error("sale_failed_unexpectedly", exc_info=True)
                    raise

                logger.info(
                    "sale_committed",
                    extra={
                        "invoice_id": record.id,
                        "totals": draft.totals,
                        "reserved_count": len(reserved),
                        "stock_notices": notices,
                    },
                )
            return SaleResult.committed(record, notices)

    def _reserve(
        self, owner_id: str, draft: InvoiceDraft
    ) -> tuple[list[StockReservation], list[StockNotice]]:
        reserved: list[StockReservation] = []
        notices: list[StockNotice] = []
        for reservation in draft.reservations:
            try:
                self._catalog.reserve_stock(
                    owner_id, reservation.product_id, reservation.quantity
                )
            except (InsufficientStockError, ProductNotFoundError) as exc:
                notice = StockNotice.from_error(reservation, exc)
                notices.append(notice)
                logger.warning("stock_reservation_skipped", extra={"notice": notice})
                continue
            reserved.append(reservation)
        return reserved, notices

    def _compensate(
        self, owner_id: str, reserved: Sequence[StockReservation]
    ) -> None:
        """Release each reservation in its own transaction; never raises."""
        for reservation in reserved:
            try:
                self._catalog.release_stock(
                    owner_id, reservation.product_id, reservation.quantity
                )
                self._session.commit()
            except (PosKernelError, SQLAlchemyError) as exc:
                self._session.rollback()
                logger.error(
                    "stock_compensation_failed",
                    extra={"reservation": reservation, "error": str(exc)},
                )

    def _reject(self, exc: PosKernelError, phase: SalePhase) -> SaleResult:
        logger.info(
            "sale_rejected",
            extra={
                "error_code": exc.code,
                "field_errors": getattr(exc, "field_errors", ()),
            },
        )
        return SaleResult.rejected(exc, phase)

    def _fail(self, exc: StorageError, phase: SalePhase) -> SaleResult:
        logger.error(
            "sale_failed",
            extra={"error_code": exc.code, "operation": exc.operation},
        )
        return SaleResult.failed(exc, phase)

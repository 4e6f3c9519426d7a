"""
Tests for structured sale logging (pos_kernel/logging_config.py).

Verifies:
- LogContext binds sale-scoped fields and restores them on exit
- Sale objects (notices, field errors, totals, enums) serialise to JSON
- Kernel exception attributes are flattened into exc_* fields
- One sale's log lines share a correlation id and carry their phase
"""

import json
import logging
import threading
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from pos_kernel.domain.values import compute_totals
from pos_kernel.exceptions import CartValidationError, FieldError, InsufficientStockError
from pos_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
    resolve_level,
)
from pos_kernel.services.sale_coordinator import (
    SaleCoordinator,
    SalePhase,
    SaleStatus,
    StockNotice,
)
from tests.conftest import OWNER_ID, catalog_line, custom_line


@pytest.fixture(autouse=True)
def _restore_suite_logging():
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def log_stream() -> StringIO:
    """Route pos_kernel logs into a fresh stream at DEBUG."""
    reset_logging()
    stream = StringIO()
    configure_logging(level="debug", stream=stream)
    return stream


def _records(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_bind_restores_outer_values(self):
        with LogContext.bind(correlation_id="sale-1", owner_id="owner-1"):
            with LogContext.bind(invoice_number="INV-1", sale_phase="reserving"):
                assert LogContext.get_all() == {
                    "correlation_id": "sale-1",
                    "owner_id": "owner-1",
                    "invoice_number": "INV-1",
                    "sale_phase": "reserving",
                }
            assert LogContext.get_all() == {"correlation_id": "sale-1", "owner_id": "owner-1"}
        assert LogContext.get_all() == {}

    def test_phase_enum_bound_by_value(self):
        with LogContext.bind(sale_phase=SalePhase.PERSISTING):
            assert LogContext.get_all()["sale_phase"] == "persisting"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(trace_id="t-1")

    def test_none_leaves_field_unchanged(self):
        LogContext.set(owner_id="owner-1")
        LogContext.set(owner_id=None, invoice_number="INV-2")
        assert LogContext.get_all() == {"owner_id": "owner-1", "invoice_number": "INV-2"}

    def test_other_threads_start_empty(self):
        LogContext.set(correlation_id="sale-1")
        seen = []
        worker = threading.Thread(target=lambda: seen.append(LogContext.get_all()))
        worker.start()
        worker.join()
        assert seen == [{}]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_envelope_and_bound_fields(self, log_stream):
        with LogContext.bind(owner_id="owner-1", sale_phase=SalePhase.VALIDATING):
            get_logger("services.sale_coordinator").info("sale_rejected")

        (record,) = _records(log_stream)
        assert record["level"] == "INFO"
        assert record["logger"] == "pos_kernel.services.sale_coordinator"
        assert record["owner_id"] == "owner-1"
        assert record["sale_phase"] == "validating"
        assert "ts" in record

    def test_sale_objects_serialised(self, log_stream):
        notice = StockNotice(
            product_id="p-1", requested=5, reason_code="INSUFFICIENT_STOCK", available=2
        )
        invoice_id = uuid4()
        get_logger("test").info(
            "sale_committed",
            extra={
                "invoice_id": invoice_id,
                "totals": compute_totals([Decimal("3000.00")], Decimal("0.075")),
                "stock_notices": (notice,),
                "status": SaleStatus.COMMITTED,
            },
        )

        (record,) = _records(log_stream)
        assert record["invoice_id"] == str(invoice_id)
        assert record["totals"] == {"subtotal": "3000.00", "tax": "225.00", "total": "3225.00"}
        assert record["stock_notices"] == [
            {"product_id": "p-1", "requested": 5, "available": 2, "reason": "INSUFFICIENT_STOCK"},
        ]
        assert record["status"] == "committed"

    def test_cart_validation_fields_flattened(self, log_stream):
        try:
            raise CartValidationError([FieldError("products[0].price", "is too large")])
        except CartValidationError:
            get_logger("test").error("sale_rejected", exc_info=True)

        (record,) = _records(log_stream)
        assert record["exc_code"] == "CART_VALIDATION_FAILED"
        assert record["exc_field_errors"] == [
            {"field": "products[0].price", "reason": "is too large"},
        ]
        assert "traceback" in record

    def test_stock_error_fields_flattened(self, log_stream):
        try:
            raise InsufficientStockError("p-1", requested=5, available=2)
        except InsufficientStockError:
            get_logger("test").warning("stock_error", exc_info=True)

        (record,) = _records(log_stream)
        assert record["exc_type"] == "InsufficientStockError"
        assert (record["exc_requested"], record["exc_available"]) == (5, 2)


class TestConfigureLogging:
    def test_level_names_resolved(self):
        assert resolve_level("warning") == logging.WARNING
        assert resolve_level(logging.DEBUG) == logging.DEBUG
        with pytest.raises(ValueError):
            resolve_level("chatty")

    def test_first_call_wins(self, log_stream):
        configure_logging(level="error", stream=StringIO())
        root = logging.getLogger("pos_kernel")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG


# ---------------------------------------------------------------------------
# Sale log trail
# ---------------------------------------------------------------------------


@pytest.fixture
def coordinator(session, assembler, clock) -> SaleCoordinator:
    return SaleCoordinator(session, assembler, clock)


class TestSaleLogTrail:
    def test_one_sale_shares_a_correlation_id(
        self, log_stream, coordinator, make_product, sale_metadata
    ):
        product = make_product(stock=1)
        log_stream.truncate(0)
        log_stream.seek(0)

        coordinator.submit_sale(OWNER_ID, [catalog_line(product, 3)], sale_metadata)

        records = _records(log_stream)
        assert len({r["correlation_id"] for r in records}) == 1
        by_message = {r["message"]: r for r in records}
        assert by_message["stock_reservation_skipped"]["sale_phase"] == "reserving"
        assert by_message["sale_committed"]["sale_phase"] == "persisting"
        assert by_message["sale_completed"]["status"] == "committed"
        assert by_message["sale_completed"]["stock_notice_count"] == 1

    def test_rejection_logged_with_field_errors(
        self, log_stream, coordinator, sale_metadata
    ):
        coordinator.submit_sale(OWNER_ID, [custom_line("Repair", "1e30")], sale_metadata)

        rejected = next(r for r in _records(log_stream) if r["message"] == "sale_rejected")
        assert rejected["sale_phase"] == "validating"
        assert rejected["error_code"] == "CART_VALIDATION_FAILED"
        assert rejected["field_errors"] == [
            {"field": "products[0].price", "reason": "is too large"},
        ]
        assert "invoice_number" not in rejected

    def test_each_sale_gets_its_own_correlation_id(
        self, log_stream, coordinator, clock, sale_metadata
    ):
        coordinator.submit_sale(OWNER_ID, [custom_line("Repair", "100.00")], sale_metadata)
        clock.advance(1)
        coordinator.submit_sale(OWNER_ID, [custom_line("Repair", "100.00")], sale_metadata)

        started = [r for r in _records(log_stream) if r["message"] == "sale_started"]
        assert len(started) == 2
        assert started[0]["correlation_id"] != started[1]["correlation_id"]

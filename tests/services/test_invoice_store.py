"""
Tests for InvoiceStore insert and delete.

Verifies:
- A draft is stored with its totals, metadata and typed line items
- The per-owner unique invoice number is enforced by the database
- Delete is owner-scoped and reports unknown ids
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from pos_kernel.domain.cart import CatalogLineItem, CustomLineItem
from pos_kernel.exceptions import DuplicateInvoiceNumberError, InvoiceNotFoundError
from pos_kernel.selectors.invoice_selector import InvoiceSelector
from pos_kernel.services.invoice_store import InvoiceStore
from tests.conftest import OTHER_OWNER_ID, OWNER_ID, catalog_line, custom_line


@pytest.fixture
def store(session) -> InvoiceStore:
    return InvoiceStore(session)


class TestInsert:
    """InvoiceStore.insert()."""

    def test_stores_draft(self, store, session, assembler, clock, make_product, sale_metadata):
        product = make_product(name="Charger", price="1000.00")
        draft = assembler.assemble(
            OWNER_ID,
            [catalog_line(product, 3), custom_line("Repair", "1500.00")],
            sale_metadata,
        )
        record = store.insert(draft, created_at=clock.now_utc())
        session.commit()

        stored = InvoiceSelector(session).get(OWNER_ID, record.id)
        assert stored == record
        assert stored.subtotal == Decimal("4500.00")
        assert stored.tax == Decimal("337.50")
        assert stored.total == Decimal("4837.50")
        assert stored.tax_rate == Decimal("0.075")
        assert stored.metadata.customer_name == "Chidi Okafor"
        assert stored.line_items == (
            CatalogLineItem(
                product_id=str(product.id),
                name="Charger",
                unit_price=Decimal("1000.00"),
                quantity=3,
            ),
            CustomLineItem(name="Repair", unit_price=Decimal("1500.00"), quantity=1),
        )
        assert stored.created_at == clock.now_utc()

    def test_duplicate_number_for_same_owner(self, store, session, assembler, clock, sale_metadata):
        cart = [custom_line("Repair", "1500.00")]
        store.insert(
            assembler.assemble(OWNER_ID, cart, sale_metadata, "INV-0001"),
            created_at=clock.now_utc(),
        )
        session.commit()

        with pytest.raises(DuplicateInvoiceNumberError) as exc_info:
            store.insert(
                assembler.assemble(OWNER_ID, cart, sale_metadata, "INV-0001"),
                created_at=clock.now_utc(),
            )
        assert exc_info.value.retryable is True
        assert exc_info.value.invoice_number == "INV-0001"
        session.rollback()

    def test_same_number_for_different_owners(self, store, session, assembler, clock, sale_metadata):
        cart = [custom_line("Repair", "1500.00")]
        store.insert(
            assembler.assemble(OWNER_ID, cart, sale_metadata, "INV-0001"),
            created_at=clock.now_utc(),
        )
        store.insert(
            assembler.assemble(OTHER_OWNER_ID, cart, sale_metadata, "INV-0001"),
            created_at=clock.now_utc(),
        )
        session.commit()
        assert InvoiceSelector(session).number_exists(OTHER_OWNER_ID, "INV-0001")

    def test_conflict_logged(self, store, session, assembler, clock, sale_metadata, captured_logs):
        cart = [custom_line("Repair", "1500.00")]
        draft = assembler.assemble(OWNER_ID, cart, sale_metadata, "INV-0002")
        store.insert(draft, created_at=clock.now_utc())
        session.commit()
        with pytest.raises(DuplicateInvoiceNumberError):
            store.insert(draft, created_at=clock.now_utc())
        session.rollback()
        assert any(r["message"] == "invoice_number_conflict" for r in captured_logs())


class TestDelete:
    """InvoiceStore.delete()."""

    def _insert(self, store, session, assembler, clock, sale_metadata, owner_id=OWNER_ID):
        record = store.insert(
            assembler.assemble(owner_id, [custom_line("Repair", "1500.00")], sale_metadata),
            created_at=clock.now_utc(),
        )
        session.commit()
        clock.advance(1)
        return record

    def test_delete_removes_invoice(self, store, session, assembler, clock, sale_metadata):
        record = self._insert(store, session, assembler, clock, sale_metadata)
        store.delete(OWNER_ID, record.id)
        session.commit()
        assert InvoiceSelector(session).get(OWNER_ID, record.id) is None

    def test_unknown_id(self, store):
        with pytest.raises(InvoiceNotFoundError):
            store.delete(OWNER_ID, uuid4())

    def test_malformed_id(self, store):
        with pytest.raises(InvoiceNotFoundError):
            store.delete(OWNER_ID, "42")

    def test_other_owner_cannot_delete(self, store, session, assembler, clock, sale_metadata):
        record = self._insert(
            store, session, assembler, clock, sale_metadata, owner_id=OTHER_OWNER_ID
        )
        with pytest.raises(InvoiceNotFoundError):
            store.delete(OWNER_ID, record.id)
        session.rollback()
        assert InvoiceSelector(session).get(OTHER_OWNER_ID, record.id) is not None

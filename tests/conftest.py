"""
Pytest fixtures for the POS kernel test suite.

Provides:
- A file-backed SQLite database per test (real commits, real locking)
- Session factory, session, deterministic clock
- Product seeding and stock lookup helpers
- Captured structured logs

Environment Variables:
- DATABASE_URL: run against another database (e.g. PostgreSQL) instead of
  the per-test SQLite file.  Tables are dropped after each test.
"""

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from pos_config import PosSettings
from pos_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from pos_kernel.db.immutability import register_immutability_listeners
from pos_kernel.domain.assembly import InvoiceAssembler
from pos_kernel.domain.clock import DeterministicClock
from pos_kernel.domain.dtos import ProductRecord
from pos_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pos_kernel.models.product import Product
from pos_services import PointOfSale

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"
TAX_RATE = Decimal("0.075")

# Wednesday 13 March 2024, 10:00 UTC
DEFAULT_NOW = datetime(2024, 3, 13, 10, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "concurrency: tests that run several threads against one database"
    )
    config.addinivalue_line(
        "markers", "slow: property-based tests with many examples"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture pos_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, pos):
            pos.submit_sale(...)
            logs = captured_logs()
            assert any(r["message"] == "sale_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pos_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    """Fresh database per test: engine initialized, tables created."""
    external_url = os.environ.get("DATABASE_URL")
    url = external_url or f"sqlite:///{tmp_path / 'pos.db'}"
    eng = init_engine_from_url(url, pool_size=5, max_overflow=10)
    create_tables()
    register_immutability_listeners()
    yield eng
    if external_url:
        drop_tables()
    reset_engine()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return get_session_factory()


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """Session with real commits; the database is discarded after the test."""
    sess = session_factory()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(DEFAULT_NOW)


@pytest.fixture
def assembler(clock) -> InvoiceAssembler:
    return InvoiceAssembler(tax_rate=TAX_RATE, clock=clock)


@pytest.fixture
def settings() -> PosSettings:
    return PosSettings()


@pytest.fixture
def pos(session_factory, settings, clock) -> PointOfSale:
    return PointOfSale(session_factory, settings=settings, clock=clock)


@pytest.fixture
def sale_metadata() -> dict:
    return {
        "company_name": "Adebayo Phones & Repairs",
        "company_address": "12 Allen Avenue, Ikeja",
        "company_phone": "+234 800 000 0000",
        "customer_name": "Chidi Okafor",
        "issuer_name": "Amaka",
    }


@pytest.fixture
def make_product(session_factory, clock):
    """
    Seed a product directly (catalog CRUD lives outside the kernel).

    Usage::

        product = make_product(name="Charger", price="1000.00", stock=5)
    """
    counter = {"n": 0}

    def _make(
        name: str | None = None,
        price: str | Decimal = "1000.00",
        stock: int = 5,
        owner_id: str = OWNER_ID,
        category: str = "Other",
    ) -> ProductRecord:
        counter["n"] += 1
        product = Product(
            owner_id=owner_id,
            name=name or f"Product {counter['n']}",
            price=Decimal(str(price)),
            stock=stock,
            category=category,
            created_at=clock.now_utc(),
        )
        with session_factory.begin() as sess:
            sess.add(product)
            sess.flush()
            record = ProductRecord.from_model(product)
        clock.advance(1)
        return record

    return _make


@pytest.fixture
def stock_of(session_factory):
    """Read a product's committed stock in a fresh session."""

    def _stock(product_id) -> int:
        with session_factory() as sess:
            return sess.execute(
                select(Product.stock).where(Product.id == product_id)
            ).scalar_one()

    return _stock


def catalog_line(product: ProductRecord, quantity: int, price: str | None = None) -> dict:
    """Cart entry for a catalog product, priced as the register would send it."""
    return {
        "id": str(product.id),
        "name": product.name,
        "price": price if price is not None else str(product.price),
        "quantity": quantity,
    }


def custom_line(name: str, price: str, quantity: int = 1) -> dict:
    return {"id": "custom", "name": name, "price": price, "quantity": quantity}

"""
Module: pos_kernel.db.base
Responsibility: Declarative base class and portable column types for all
    SQLAlchemy ORM models.  Provides the UUID primary key convention and the
    type annotation map for consistent column types.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys: Every model inherits a uuid4-generated primary key.
    - Exact money: type_annotation_map maps Python Decimal to MinorUnits, a
      BigInteger column holding the amount scaled by 10**2.  Every backend
      stores, compares and SUMs it exactly.  NEVER use float for money.
    - UTC timestamps: UTCDateTime always hands back timezone-aware UTC values,
      including on backends (SQLite) that store naive datetimes.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from pos_kernel.db.types import money_from_minor_units, money_to_minor_units


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Convert UUID to string when storing."""
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        """Convert string back to UUID when loading."""
        if value is not None:
            return PyUUID(value)
        return None


class MinorUnits(TypeDecorator):
    """
    Fixed-point money stored as a scaled integer.

    Contract:
        Decimal("3225.00") is stored as 322500 and loaded back as
        Decimal("3225.00").  SQL aggregates (SUM, COALESCE) keep the type,
        so summed results are converted back to Decimal as well.

    Guarantees:
        - Binding an amount with more than two decimal places raises
          ValueError instead of silently truncating.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return money_to_minor_units(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return money_from_minor_units(int(value))


class DecimalString(TypeDecorator):
    """Exact Decimal stored as its canonical string (rates, factors)."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalised to UTC on the way in and out.

    Naive values are taken to already be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal maps to MinorUnits -- exact fixed-point money.
        - datetime maps to UTCDateTime -- always timezone-aware UTC.
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: MinorUnits(),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


# Re-export UUID for convenience
UUID = PyUUID


def parse_entity_id(value: PyUUID | str) -> PyUUID | None:
    """Coerce an opaque id to UUID; None when it cannot name any row."""
    if isinstance(value, PyUUID):
        return value
    try:
        return PyUUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None

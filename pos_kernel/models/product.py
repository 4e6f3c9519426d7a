"""
Module: pos_kernel.models.product
Responsibility: ORM persistence for catalog products.  A product is owned by
    exactly one account and carries the live unit price and stock count.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Stock never negative.  CHECK (stock >= 0) backs up the conditional
      UPDATE in CatalogService.reserve_stock.
    - Price non-negative.  CHECK (price >= 0).
    - Name unique per owner.  UNIQUE (owner_id, name).

Failure modes:
    - IntegrityError on a duplicate (owner_id, name) or a CHECK violation.

Non-goals:
    - Catalog create/update/delete workflows live outside the kernel; the
      kernel only reads products and moves stock.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pos_kernel.db.base import Base


class Product(Base):
    """
    Persistent storage for a catalog product.

    Guarantees:
        - stock is a non-negative integer.
        - price is non-negative fixed-point money.
        - (owner_id, name) is unique.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_product_owner_name"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        Index("idx_product_owner", "owner_id"),
        Index("idx_product_owner_stock", "owner_id", "stock"),
    )

    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    price: Mapped[Decimal] = mapped_column(nullable=False)

    # only CatalogService moves this value
    stock: Mapped[int] = mapped_column(nullable=False, default=0)

    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="Other",
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Product {self.id}: {self.name!r} stock={self.stock} @ {self.price}>"

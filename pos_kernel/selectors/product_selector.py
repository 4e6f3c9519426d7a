"""
Module: pos_kernel.selectors.product_selector
Responsibility: Read-only queries over one owner's product catalog: the
    product list, counts, and the low-stock report shown on the dashboard.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Low stock means stock <= threshold; the list is ordered by stock
      ascending (then name) and capped at ``limit``.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_kernel.domain.dtos import LowStockProduct, ProductRecord
from pos_kernel.exceptions import StorageError
from pos_kernel.models.product import Product
from pos_kernel.selectors.base import BaseSelector


class ProductSelector(BaseSelector[Product]):
    """Selector for catalog queries."""

    def __init__(self, session: Session):
        super().__init__(session)

    def list_products(self, owner_id: str) -> list[ProductRecord]:
        """All products of the owner, newest first."""
        stmt = (
            select(Product)
            .where(Product.owner_id == owner_id)
            .order_by(Product.created_at.desc(), Product.name)
            .execution_options(populate_existing=True)
        )
        try:
            products = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("list_products", str(exc)) from exc
        return [ProductRecord.from_model(p) for p in products]

    def count_products(self, owner_id: str) -> int:
        stmt = select(func.count(Product.id)).where(Product.owner_id == owner_id)
        try:
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise StorageError("count_products", str(exc)) from exc

    def low_stock_products(
        self,
        owner_id: str,
        threshold: int,
        limit: int,
    ) -> list[LowStockProduct]:
        stmt = (
            select(Product.id, Product.name, Product.stock, Product.category)
            .where(Product.owner_id == owner_id, Product.stock <= threshold)
            .order_by(Product.stock.asc(), Product.name)
            .limit(limit)
        )
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StorageError("low_stock_products", str(exc)) from exc
        return [
            LowStockProduct(id=row.id, name=row.name, stock=row.stock, category=row.category)
            for row in rows
        ]

    def count_low_stock(self, owner_id: str, threshold: int) -> int:
        stmt = select(func.count(Product.id)).where(
            Product.owner_id == owner_id, Product.stock <= threshold
        )
        try:
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise StorageError("count_low_stock", str(exc)) from exc

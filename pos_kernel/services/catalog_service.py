"""
CatalogService -- Atomic stock movements against the product catalog.

Responsibility:
    The only code path that changes Product.stock.  Decrements are a single
    conditional UPDATE; increments (compensation, restock) are a single
    unconditional one.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.

Invariants enforced:
    - Stock never negative: the decrement is

          UPDATE products SET stock = stock - :q
           WHERE id = :id AND owner_id = :owner AND stock >= :q
          RETURNING stock

      so the check and the write are one statement.  Under PostgreSQL the
      row lock serializes concurrent reservations of the same product; under
      SQLite the database write lock does.  CHECK (stock >= 0) backs it up.
    - Owner scoping: every statement filters on owner_id.  A product owned by
      someone else is indistinguishable from a missing one.

Failure modes:
    - InvalidQuantityError: quantity not a positive integer.
    - ProductNotFoundError: unknown id, malformed id, or another owner's id.
    - InsufficientStockError: the conditional update matched no row but the
      product exists.
    - StorageError: any SQLAlchemy error.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_kernel.db.base import parse_entity_id
from pos_kernel.domain.dtos import ProductRecord
from pos_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
    StorageError,
)
from pos_kernel.logging_config import get_logger
from pos_kernel.models.product import Product
from pos_kernel.services.base import BaseService

logger = get_logger("services.catalog")


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)


class CatalogService(BaseService[Product]):
    """
    Stock reservation and release for one owner's products.

    Contract:
        reserve_stock() either decrements by exactly ``quantity`` and returns
        the new stock, or raises and leaves the row untouched.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _owned(self, owner_id: str, product_id: UUID):
        return (Product.id == product_id, Product.owner_id == owner_id)

    def get_product(self, owner_id: str, product_id: UUID | str) -> ProductRecord:
        pid = parse_entity_id(product_id)
        if pid is None:
            raise ProductNotFoundError(str(product_id))
        try:
            product = self.session.execute(
                select(Product)
                .where(*self._owned(owner_id, pid))
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("get_product", str(exc)) from exc
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return ProductRecord.from_model(product)

    def reserve_stock(
        self,
        owner_id: str,
        product_id: UUID | str,
        quantity: int,
    ) -> int:
        """
        Atomically decrement stock by ``quantity``.

        Returns:
            The stock remaining after the decrement.
        """
        _check_quantity(quantity)
        pid = parse_entity_id(product_id)
        if pid is None:
            raise ProductNotFoundError(str(product_id))

        stmt = (
            update(Product)
            .where(*self._owned(owner_id, pid), Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        try:
            remaining = self.session.execute(stmt).scalar_one_or_none()
            if remaining is None:
                available = self.session.execute(
                    select(Product.stock).where(*self._owned(owner_id, pid))
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("reserve_stock", str(exc)) from exc

        if remaining is None:
            if available is None:
                raise ProductNotFoundError(str(product_id))
            raise InsufficientStockError(
                product_id=str(pid),
                requested=quantity,
                available=available,
            )

        logger.info(
            "stock_reserved",
            extra={
                "product_id": str(pid),
                "quantity": quantity,
                "remaining": remaining,
            },
        )
        return remaining

    def release_stock(
        self,
        owner_id: str,
        product_id: UUID | str,
        quantity: int,
    ) -> int:
        """
        Atomically increment stock by ``quantity``.

        Used to compensate a reservation whose sale failed, and for restock.

        Returns:
            The stock after the increment.
        """
        _check_quantity(quantity)
        pid = parse_entity_id(product_id)
        if pid is None:
            raise ProductNotFoundError(str(product_id))

        stmt = (
            update(Product)
            .where(*self._owned(owner_id, pid))
            .values(stock=Product.stock + quantity)
            .returning(Product.stock)
            .execution_options(synchronize_session=False)
        )
        try:
            new_stock = self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("release_stock", str(exc)) from exc

        if new_stock is None:
            raise ProductNotFoundError(str(product_id))

        logger.info(
            "stock_released",
            extra={
                "product_id": str(pid),
                "quantity": quantity,
                "stock": new_stock,
            },
        )
        return new_stock

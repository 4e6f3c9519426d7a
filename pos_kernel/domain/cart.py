"""
Cart -- Typed line items and sale metadata.

Responsibility:
    Turns the loosely-typed cart submitted by the register (a list of
    JSON-like dicts) into a closed, strongly-typed sequence of line items,
    and the header strings of the sale into SaleMetadata.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A line item is EITHER a CatalogLineItem (references a product id) OR a
      CustomLineItem (free-form, marked by the "custom" sentinel or a missing
      id).  Nothing else reaches the assembler.
    - Unit price is the price submitted with the cart; it is copied, never
      looked up from the live catalog.
    - 0 < price x quantity <= MAX_MONEY and name non-empty for every line.
    - Header strings fit their invoice columns (METADATA_MAX_LENGTHS).

Failure modes:
    - CartValidationError carrying every FieldError found, so the caller can
      fix the whole cart in one round trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar, Mapping, Sequence, Union

from pos_kernel.db.types import MAX_MONEY
from pos_kernel.domain.values import line_amount, parse_money, parse_quantity
from pos_kernel.exceptions import CartValidationError, FieldError

CUSTOM_ITEM_ID = "custom"


@dataclass(frozen=True)
class CatalogLineItem:
    """Line item backed by a catalog product; its stock is reserved at sale time."""

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int

    kind: ClassVar[str] = "catalog"

    @property
    def amount(self) -> Decimal:
        return line_amount(self.unit_price, self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.product_id,
            "kind": self.kind,
            "name": self.name,
            "price": str(self.unit_price),
            "quantity": self.quantity,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class CustomLineItem:
    """Free-form line item (repairs, services); no catalog interaction."""

    name: str
    unit_price: Decimal
    quantity: int

    kind: ClassVar[str] = "custom"

    @property
    def amount(self) -> Decimal:
        return line_amount(self.unit_price, self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": CUSTOM_ITEM_ID,
            "kind": self.kind,
            "name": self.name,
            "price": str(self.unit_price),
            "quantity": self.quantity,
            "amount": str(self.amount),
        }


LineItem = Union[CatalogLineItem, CustomLineItem]


@dataclass(frozen=True)
class SaleMetadata:
    """Opaque display strings printed on the receipt."""

    company_name: str
    customer_name: str
    issuer_name: str
    company_address: str | None = None
    company_phone: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "company_name": self.company_name,
            "company_address": self.company_address,
            "company_phone": self.company_phone,
            "customer_name": self.customer_name,
            "issuer_name": self.issuer_name,
        }


def line_item_from_dict(raw: Mapping[str, Any]) -> LineItem:
    """
    Rebuild a line item from its stored form (``to_dict`` output).

    Used when reading invoices back; no validation is repeated.
    """
    unit_price = Decimal(str(raw["price"]))
    quantity = int(raw["quantity"])
    product_id = raw.get("id")
    if product_id in (None, "", CUSTOM_ITEM_ID):
        return CustomLineItem(name=raw["name"], unit_price=unit_price, quantity=quantity)
    return CatalogLineItem(
        product_id=str(product_id),
        name=raw["name"],
        unit_price=unit_price,
        quantity=quantity,
    )


def _parse_line_item(raw: Any, index: int) -> LineItem:
    prefix = f"products[{index}]"

    if isinstance(raw, (CatalogLineItem, CustomLineItem)):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raise CartValidationError([FieldError(prefix, "must be an object")])

    errors: list[FieldError] = []

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(FieldError(f"{prefix}.name", "must not be empty"))
        name = ""
    else:
        name = name.strip()

    unit_price: Decimal | None = None
    quantity: int | None = None
    try:
        unit_price = parse_money(raw.get("price"), f"{prefix}.price")
    except CartValidationError as exc:
        errors.extend(exc.field_errors)
    try:
        quantity = parse_quantity(raw.get("quantity"), f"{prefix}.quantity")
    except CartValidationError as exc:
        errors.extend(exc.field_errors)

    if unit_price is not None and quantity is not None:
        amount = line_amount(unit_price, quantity)
        if amount <= 0:
            errors.append(
                FieldError(f"{prefix}.price", "line amount must be greater than zero")
            )
        elif amount > MAX_MONEY:
            errors.append(FieldError(f"{prefix}.quantity", "line amount is too large"))

    if errors:
        raise CartValidationError(errors)

    product_id = raw.get("id", raw.get("product_id"))
    if product_id in (None, "", CUSTOM_ITEM_ID):
        return CustomLineItem(name=name, unit_price=unit_price, quantity=quantity)
    return CatalogLineItem(
        product_id=str(product_id),
        name=name,
        unit_price=unit_price,
        quantity=quantity,
    )


def parse_cart(raw_items: Sequence[Any] | None) -> tuple[LineItem, ...]:
    """
    Validate and type a submitted cart.

    Raises:
        CartValidationError: empty cart, or any invalid line (all lines are
            checked before raising).
    """
    if raw_items is None or isinstance(raw_items, (str, bytes, Mapping)):
        raise CartValidationError([
            FieldError("products", "at least one line item is required"),
        ])
    if len(raw_items) == 0:
        raise CartValidationError([
            FieldError("products", "at least one line item is required"),
        ])

    items: list[LineItem] = []
    errors: list[FieldError] = []
    for index, raw in enumerate(raw_items):
        try:
            items.append(_parse_line_item(raw, index))
        except CartValidationError as exc:
            errors.extend(exc.field_errors)

    if errors:
        raise CartValidationError(errors)
    return tuple(items)


_REQUIRED_METADATA = ("company_name", "customer_name", "issuer_name")
_OPTIONAL_METADATA = ("company_address", "company_phone")

# column widths on Invoice
METADATA_MAX_LENGTHS = {
    "company_name": 255,
    "company_address": 255,
    "company_phone": 50,
    "customer_name": 255,
    "issuer_name": 255,
}


def parse_metadata(raw: Mapping[str, Any] | SaleMetadata | None) -> SaleMetadata:
    """
    Validate the receipt header strings.

    Raises:
        CartValidationError: if company, customer or issuer name is missing,
            or any value is longer than its column.
    """
    if isinstance(raw, SaleMetadata):
        raw = raw.to_dict()
    raw = raw or {}

    errors: list[FieldError] = []
    values: dict[str, str | None] = {}
    for key in _REQUIRED_METADATA:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(FieldError(key, "is required"))
        else:
            values[key] = value.strip()
    for key in _OPTIONAL_METADATA:
        value = raw.get(key)
        values[key] = value.strip() or None if isinstance(value, str) else None

    for key, limit in METADATA_MAX_LENGTHS.items():
        value = values.get(key)
        if value is not None and len(value) > limit:
            errors.append(FieldError(key, f"must be at most {limit} characters"))

    if errors:
        raise CartValidationError(errors)
    return SaleMetadata(**values)

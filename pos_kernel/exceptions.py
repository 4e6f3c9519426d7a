"""
Typed Exception Hierarchy for the POS Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A sale has several distinct ways of not going through, and the UI must tell
them apart: "fix the cart", "pick another invoice number", "your sale did not
save, please retry".  Parsing messages for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PosKernelError:

    PosKernelError (base)
    |
    +-- ValidationError
    |   +-- CartValidationError
    |   +-- InvalidQuantityError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- InvoiceError
    |   +-- DuplicateInvoiceNumberError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- InvoiceNotFoundError
    |
    +-- StorageError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | CART_VALIDATION_FAILED      | Cart or sale metadata is malformed
                | INVALID_QUANTITY            | Restock/reserve with quantity <= 0
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Reservation larger than current stock
----------------|-----------------------------|-----------------------------------------
Invoice         | DUPLICATE_INVOICE_NUMBER    | Number already used by this owner
----------------|-----------------------------|-----------------------------------------
Lookup          | NOT_FOUND                   | Unknown id, or id of another owner
----------------|-----------------------------|-----------------------------------------
Storage         | STORAGE_ERROR               | Database failure (transient)
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE of a persisted invoice

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION IS USER-CORRECTABLE:

    except CartValidationError as e:
        return {"error": e.code, "fields": [fe.to_dict() for fe in e.field_errors]}

2. DUPLICATE NUMBERS ARE RETRYABLE:

    except DuplicateInvoiceNumberError as e:
        assert e.retryable
        resubmit_with_fresh_number()

3. NOT FOUND NEVER LEAKS OWNERSHIP:

    ProductNotFoundError and InvoiceNotFoundError share the NOT_FOUND code
    and the same message whether the id is unknown or owned by someone else.

4. INSUFFICIENT STOCK IS SOFT DURING A SALE:

    The sale coordinator logs it per line item and commits the sale anyway;
    it is only raised to callers of CatalogService.reserve_stock directly.
===============================================================================
"""

from dataclasses import dataclass


class PosKernelError(Exception):
    """
    Base exception for all POS kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "POS_KERNEL_ERROR"


# Validation exceptions


@dataclass(frozen=True)
class FieldError:
    """One field-level validation failure."""

    field: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class ValidationError(PosKernelError):
    """Base exception for user-correctable input errors."""

    code: str = "VALIDATION_ERROR"


class CartValidationError(ValidationError):
    """The submitted cart or sale metadata failed validation."""

    code: str = "CART_VALIDATION_FAILED"

    def __init__(self, field_errors: list[FieldError] | tuple[FieldError, ...]):
        self.field_errors = tuple(field_errors)
        details = "; ".join(f"{fe.field}: {fe.reason}" for fe in self.field_errors)
        super().__init__(f"Cart validation failed: {details}")


class InvalidQuantityError(ValidationError):
    """Stock quantities must be positive integers."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(f"Quantity must be a positive integer, got {quantity!r}")


# Stock exceptions


class StockError(PosKernelError):
    """Base exception for stock-related errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Reservation requested more units than the product has in stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


# Invoice exceptions


class InvoiceError(PosKernelError):
    """Base exception for invoice-related errors."""

    code: str = "INVOICE_ERROR"


class DuplicateInvoiceNumberError(InvoiceError):
    """Invoice number already used by this owner. Retry with a new number."""

    code: str = "DUPLICATE_INVOICE_NUMBER"
    retryable: bool = True

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice number already exists: {invoice_number}")


# Lookup exceptions


class NotFoundError(PosKernelError):
    """
    Entity does not exist for this owner.

    Raised identically for unknown ids and ids that belong to another
    owner, so existence of other owners' data is never revealed.
    """

    code: str = "NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class ProductNotFoundError(NotFoundError):
    """Product id unknown for this owner."""

    entity_type: str = "Product"


class InvoiceNotFoundError(NotFoundError):
    """Invoice id unknown for this owner."""

    entity_type: str = "Invoice"


# Storage exceptions


class StorageError(PosKernelError):
    """
    Transient infrastructure failure in the storage backend.

    Wraps the underlying SQLAlchemy error (available as __cause__).
    """

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(PosKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify a write-once record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

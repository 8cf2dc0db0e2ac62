"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InsufficientStockError(ValidationError):
    """A sale asks for more of a product than is in stock."""

    def __init__(self, product_name: str, available: Decimal, requested: Decimal):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(insufficient_stock(product_name, available))


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class ConfigurationError(DomainError):
    """Missing or invalid configuration, such as exchange rates."""


class StorageError(DomainError):
    """The underlying store failed; the unit of work was rolled back."""


def insufficient_stock(product_name: str, available: Decimal) -> str:
    """Return message for a stock shortfall."""
    return f"Insufficient stock for '{product_name}'. Available: {available.normalize():f}"


def product_not_found(product_id: str) -> str:
    """Return message for missing product."""
    return f"Product {product_id} not found"


def customer_not_found(customer_id: str) -> str:
    """Return message for missing customer."""
    return f"Customer {customer_id} not found"


def supplier_not_found(supplier_id: str) -> str:
    """Return message for missing supplier."""
    return f"Supplier {supplier_id} not found"


def register_not_found(register_id: str) -> str:
    """Return message for missing cash register."""
    return f"Cash register {register_id} not found"


def invoice_not_found(invoice_id: str) -> str:
    """Return message for missing invoice."""
    return f"Invoice {invoice_id} not found"


def category_not_found(category_id: str) -> str:
    """Return message for missing category."""
    return f"Category {category_id} not found"


def duplicate_sku(sku: str) -> str:
    """Return message for a SKU already used by another product."""
    return f"Product with SKU '{sku}' already exists"


def missing_exchange_rates() -> str:
    """Return message when exchange rates are not configured."""
    return "Exchange rates are not configured"

"""Domain layer for tillbook application.

Services live in their own modules (``tillbook.domain.invoice`` and so on)
and are imported from there; this package only re-exports the entities and
errors shared by every layer.
"""

from tillbook.domain.entities import (
    ANCHOR_CURRENCY,
    CASH_CUSTOMER_ID,
    DEFAULT_REGISTER_ID,
    Balances,
    Currency,
    InvoiceType,
    PartyKind,
    PaymentType,
    Price,
)
from tillbook.domain.errors import (
    ConfigurationError,
    ConflictError,
    DomainError,
    InsufficientStockError,
    NotFoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    "ANCHOR_CURRENCY",
    "CASH_CUSTOMER_ID",
    "DEFAULT_REGISTER_ID",
    "Balances",
    "Currency",
    "InvoiceType",
    "PartyKind",
    "PaymentType",
    "Price",
    "ConfigurationError",
    "ConflictError",
    "DomainError",
    "InsufficientStockError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]

"""Domain model entities for tillbook.

These are pure data classes representing business concepts, independent of
database schema. Balance maps are typed here and only serialized to JSON at
the storage boundary.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

ZERO = Decimal("0")


class Currency(str, Enum):
    """Supported currencies. SYP is the anchor currency."""

    SYP = "SYP"
    USD = "USD"
    TRY = "TRY"


ANCHOR_CURRENCY = Currency.SYP

# Walk-in customer for anonymous cash sales; never valid for credit.
CASH_CUSTOMER_ID = "c-cash"
DEFAULT_REGISTER_ID = "cr-1"


def new_id(prefix: str) -> str:
    """Generate an entity id such as ``p-3f9c0a1b2d4e``."""
    return f"{prefix}-{uuid4().hex[:12]}"


class PaymentType(str, Enum):
    """How an invoice is settled."""

    CASH = "cash"
    CREDIT = "credit"


class InvoiceType(str, Enum):
    """Invoice kinds. POS and Sale both sell goods."""

    POS = "pos"
    SALE = "sale"
    PURCHASE = "purchase"

    @property
    def is_sale(self) -> bool:
        return self is not InvoiceType.PURCHASE


class CashTransactionType(str, Enum):
    """Audit log entry types for cash register movements."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer-in"
    TRANSFER_OUT = "transfer-out"
    SALE = "sale"
    PURCHASE = "purchase"
    EXPENSE = "expense"
    OPENING_BALANCE = "opening-balance"
    PAYMENT_RECEIVED = "payment-received"
    PAYMENT_MADE = "payment-made"


class PartyKind(str, Enum):
    """The two ledger counterparties."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class Balances(Mapping[Currency, Decimal]):
    """Immutable per-currency running balance.

    Every currency is always present; missing entries read as zero.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[Currency, Decimal]] = None):
        self._values = {currency: ZERO for currency in Currency}
        if values:
            for currency, amount in values.items():
                self._values[Currency(currency)] = Decimal(amount)

    def __getitem__(self, currency: Currency) -> Decimal:
        return self._values[Currency(currency)]

    def __iter__(self) -> Iterator[Currency]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return all(self[c] == Decimal(other.get(c, ZERO)) for c in Currency)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._values[c] for c in Currency))

    def __repr__(self) -> str:
        inner = ", ".join(f"{c.value}: {v}" for c, v in self._values.items())
        return f"Balances({{{inner}}})"

    def adjust(self, currency: Currency, delta: Decimal) -> "Balances":
        """Return a copy with ``delta`` added to one currency entry."""
        values = dict(self._values)
        values[Currency(currency)] = values[Currency(currency)] + Decimal(delta)
        return Balances(values)

    def to_json_dict(self) -> dict[str, str]:
        """Serialize to a JSON-safe dict with exact decimal strings."""
        return {c.value: str(v) for c, v in self._values.items()}

    @classmethod
    def from_json_dict(cls, data: Optional[Mapping[str, Any]]) -> "Balances":
        """Parse a stored balance map; unknown currencies are ignored."""
        values = {}
        for key, amount in (data or {}).items():
            try:
                currency = Currency(key)
            except ValueError:
                continue
            values[currency] = Decimal(str(amount)) if amount is not None else ZERO
        return cls(values)


@dataclass(frozen=True)
class Price:
    """An amount in a specific currency."""

    amount: Decimal
    currency: Currency

    def to_json_dict(self) -> dict[str, str]:
        return {"amount": str(self.amount), "currency": self.currency.value}

    @classmethod
    def from_json_dict(cls, data: Mapping[str, Any]) -> "Price":
        return cls(amount=Decimal(str(data["amount"])), currency=Currency(data["currency"]))


@dataclass(frozen=True)
class ExchangeRates:
    """Anchor-currency units per foreign currency unit."""

    usd: Decimal
    try_: Decimal


@dataclass(frozen=True)
class Category:
    """Product category with optional parent."""

    id: str
    name: str
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class Product:
    """Catalog product."""

    id: str
    name: str
    sku: Optional[str]
    stock: Decimal
    cost_price: Price
    wholesale_price: Price
    selling_price: Price
    category_id: Optional[str] = None


@dataclass(frozen=True)
class Party:
    """Customer or supplier with a running balance per currency.

    A positive customer balance is a receivable; a positive supplier
    balance is a payable.
    """

    id: str
    kind: PartyKind
    name: str
    phone: Optional[str] = None
    balances: Balances = field(default_factory=Balances)


@dataclass(frozen=True)
class CashRegister:
    """Cash drawer holding an independent balance per currency."""

    id: str
    name: str
    balances: Balances = field(default_factory=Balances)


@dataclass(frozen=True)
class CashTransaction:
    """Append-only audit entry for a register movement."""

    id: str
    date: datetime
    register_id: str
    type: CashTransactionType
    amount: Decimal
    currency: Currency
    amount_in_anchor: Decimal
    description: str
    related_id: Optional[str] = None
    linked_invoice_id: Optional[str] = None


@dataclass(frozen=True)
class InvoiceItem:
    """Invoice line with product name and prices captured at save time."""

    product_id: str
    product_name: str
    quantity: Decimal
    unit_price: Price
    total_price: Price


@dataclass(frozen=True)
class InvoiceDraft:
    """An invoice before settlement: everything except id and date."""

    type: InvoiceType
    payment_type: PaymentType
    items: tuple[InvoiceItem, ...]
    currency: Currency
    total_amount: Decimal
    total_amount_in_anchor: Decimal
    customer_id: Optional[str] = None
    supplier_id: Optional[str] = None
    cash_register_id: Optional[str] = None
    vendor_invoice_number: Optional[str] = None

    @property
    def party_id(self) -> Optional[str]:
        return self.customer_id if self.type.is_sale else self.supplier_id


@dataclass(frozen=True)
class Invoice:
    """Committed invoice."""

    id: str
    date: datetime
    type: InvoiceType
    payment_type: PaymentType
    items: tuple[InvoiceItem, ...]
    currency: Currency
    total_amount: Decimal
    total_amount_in_anchor: Decimal
    customer_id: Optional[str] = None
    supplier_id: Optional[str] = None
    cash_register_id: Optional[str] = None
    vendor_invoice_number: Optional[str] = None

    @property
    def party_id(self) -> Optional[str]:
        return self.customer_id if self.type.is_sale else self.supplier_id


@dataclass(frozen=True)
class ExpenseCategory:
    """Expense category."""

    id: str
    name: str


@dataclass(frozen=True)
class Expense:
    """Expense paid out of a cash register."""

    id: str
    date: datetime
    description: str
    category_id: Optional[str]
    cash_register_id: str
    amount: Decimal
    currency: Currency
    amount_in_anchor: Decimal


@dataclass(frozen=True)
class SettlementResult:
    """Structured outcome of invoice processing for the caller."""

    success: bool
    message: str
    invoice_id: Optional[str] = None

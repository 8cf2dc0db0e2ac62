"""Invoice settlement engine.

``settle_invoice`` is a pure function of a ledger snapshot and an invoice
draft. It returns the new state of every touched product, party and cash
register together with the audit rows to write; it never touches storage.
``InvoiceService`` loads the snapshot and persists the outcome inside one
database transaction.
"""

from collections import defaultdict
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from loguru import logger

from tillbook.domain.entities import (
    CASH_CUSTOMER_ID,
    CashRegister,
    CashTransaction,
    CashTransactionType,
    Invoice,
    InvoiceDraft,
    Party,
    PartyKind,
    PaymentType,
    Product,
    new_id,
)
from tillbook.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    customer_not_found,
    product_not_found,
    register_not_found,
    supplier_not_found,
)

INVOICE_PREFIX = "INV"


def format_invoice_id(number: int) -> str:
    """Format a sequence number as an invoice id (42 -> ``INV-00042``)."""
    return f"{INVOICE_PREFIX}-{number:05d}"


def parse_invoice_number(invoice_id: str) -> int:
    """Extract the sequence number from an invoice id."""
    prefix, _, digits = invoice_id.partition("-")
    if prefix != INVOICE_PREFIX or not digits.isdigit():
        raise ValidationError(f"Malformed invoice id '{invoice_id}'")
    return int(digits)


def new_cash_transaction_id() -> str:
    """Generate an id for a cash transaction row."""
    return new_id("ct")


@dataclass(frozen=True)
class LedgerSnapshot:
    """Current state of every entity an invoice may touch."""

    products: Mapping[str, Product]
    customers: Mapping[str, Party]
    suppliers: Mapping[str, Party]
    registers: Mapping[str, CashRegister]
    next_invoice_number: int


@dataclass(frozen=True)
class SettlementOutcome:
    """Everything that must be persisted to commit a settlement.

    ``invoice`` is None when only a reversal was performed (deletion).
    ``next_invoice_number`` is set only when a new number was consumed.
    """

    invoice: Optional[Invoice]
    products: dict[str, Product] = field(default_factory=dict)
    customers: dict[str, Party] = field(default_factory=dict)
    suppliers: dict[str, Party] = field(default_factory=dict)
    registers: dict[str, CashRegister] = field(default_factory=dict)
    removed_invoice_id: Optional[str] = None
    cash_transactions: tuple[CashTransaction, ...] = ()
    next_invoice_number: Optional[int] = None


class _Workspace:
    """Mutable copy of the snapshot; records which entities changed."""

    def __init__(self, snapshot: LedgerSnapshot):
        self.snapshot = snapshot
        self.products: dict[str, Product] = {}
        self.parties: dict[PartyKind, dict[str, Party]] = {
            PartyKind.CUSTOMER: {},
            PartyKind.SUPPLIER: {},
        }
        self.registers: dict[str, CashRegister] = {}

    def product(self, product_id: str) -> Optional[Product]:
        if product_id in self.products:
            return self.products[product_id]
        return self.snapshot.products.get(product_id)

    def party(self, kind: PartyKind, party_id: str) -> Optional[Party]:
        if party_id in self.parties[kind]:
            return self.parties[kind][party_id]
        source = self.snapshot.customers if kind is PartyKind.CUSTOMER else self.snapshot.suppliers
        return source.get(party_id)

    def register(self, register_id: str) -> Optional[CashRegister]:
        if register_id in self.registers:
            return self.registers[register_id]
        return self.snapshot.registers.get(register_id)

    def adjust_stock(self, product_id: str, delta: Decimal) -> bool:
        product = self.product(product_id)
        if product is None:
            return False
        self.products[product_id] = replace(product, stock=product.stock + delta)
        return True

    def adjust_party(self, kind: PartyKind, party_id: str, currency, delta: Decimal) -> bool:
        party = self.party(kind, party_id)
        if party is None:
            return False
        self.parties[kind][party_id] = replace(party, balances=party.balances.adjust(currency, delta))
        return True

    def adjust_register(self, register_id: str, currency, delta: Decimal) -> bool:
        register = self.register(register_id)
        if register is None:
            return False
        self.registers[register_id] = replace(
            register, balances=register.balances.adjust(currency, delta)
        )
        return True


def _party_kind(is_sale: bool) -> PartyKind:
    return PartyKind.CUSTOMER if is_sale else PartyKind.SUPPLIER


def validate_draft(draft: InvoiceDraft) -> None:
    """Check a draft's shape before any effect is computed.

    Raises:
        ValidationError: If a required party/register is missing, a line
            quantity is not positive, or credit is requested for the
            walk-in customer
    """
    if not draft.items:
        raise ValidationError("Invoice has no items")
    for item in draft.items:
        if item.quantity <= 0:
            raise ValidationError(f"Quantity for '{item.product_name}' must be positive")

    if draft.type.is_sale:
        if not draft.customer_id:
            raise ValidationError("A sale invoice requires a customer")
        if draft.supplier_id:
            raise ValidationError("A sale invoice cannot reference a supplier")
    elif draft.customer_id:
        raise ValidationError("A purchase invoice cannot reference a customer")

    if draft.payment_type is PaymentType.CASH:
        if not draft.cash_register_id:
            raise ValidationError("A cash invoice requires a cash register")
    else:
        if draft.type.is_sale and draft.customer_id == CASH_CUSTOMER_ID:
            raise ValidationError("Credit sales to the walk-in cash customer are not allowed")
        if not draft.type.is_sale and not draft.supplier_id:
            raise ValidationError("A credit purchase requires a supplier")


def _reverse(ws: _Workspace, original: Invoice) -> None:
    """Undo every effect a committed invoice had on stock and balances."""
    was_sale = original.type.is_sale
    for item in original.items:
        restored = item.quantity if was_sale else -item.quantity
        if not ws.adjust_stock(item.product_id, restored):
            logger.warning(
                f"Product {item.product_id} of {original.id} no longer exists; stock not restored"
            )

    if original.payment_type is PaymentType.CREDIT:
        party_id = original.party_id
        if party_id and not ws.adjust_party(
            _party_kind(was_sale), party_id, original.currency, -original.total_amount
        ):
            logger.warning(f"Party {party_id} of {original.id} no longer exists; balance not reversed")
    elif original.cash_register_id:
        delta = -original.total_amount if was_sale else original.total_amount
        if not ws.adjust_register(original.cash_register_id, original.currency, delta):
            logger.warning(
                f"Register {original.cash_register_id} of {original.id} no longer exists; "
                "balance not reversed"
            )


def _check_stock(ws: _Workspace, draft: InvoiceDraft) -> None:
    """Ensure every product exists and, for sales, has enough stock.

    Quantities of repeated lines for the same product are summed.
    """
    requested: dict[str, Decimal] = defaultdict(Decimal)
    names: dict[str, str] = {}
    for item in draft.items:
        requested[item.product_id] += item.quantity
        names.setdefault(item.product_id, item.product_name)

    for product_id, quantity in requested.items():
        product = ws.product(product_id)
        if product is None:
            raise NotFoundError(product_not_found(product_id))
        if draft.type.is_sale and product.stock < quantity:
            raise InsufficientStockError(product.name, product.stock, quantity)


def _apply(
    ws: _Workspace,
    draft: InvoiceDraft,
    invoice_id: str,
    now: datetime,
    id_factory: Callable[[], str],
) -> Optional[CashTransaction]:
    """Apply a draft's effects; returns the cash audit row if any."""
    is_sale = draft.type.is_sale
    for item in draft.items:
        ws.adjust_stock(item.product_id, -item.quantity if is_sale else item.quantity)

    if draft.payment_type is PaymentType.CREDIT:
        kind = _party_kind(is_sale)
        party_id = draft.party_id
        if not ws.adjust_party(kind, party_id, draft.currency, draft.total_amount):
            message = customer_not_found if kind is PartyKind.CUSTOMER else supplier_not_found
            raise NotFoundError(message(party_id))
        return None

    register_id = draft.cash_register_id
    delta = draft.total_amount if is_sale else -draft.total_amount
    if not ws.adjust_register(register_id, draft.currency, delta):
        raise NotFoundError(register_not_found(register_id))

    # Walk-in sales name the customer too; validate it exists.
    if is_sale and ws.party(PartyKind.CUSTOMER, draft.customer_id) is None:
        raise NotFoundError(customer_not_found(draft.customer_id))

    return CashTransaction(
        id=id_factory(),
        date=now,
        register_id=register_id,
        type=CashTransactionType.SALE if is_sale else CashTransactionType.PURCHASE,
        amount=draft.total_amount,
        currency=draft.currency,
        amount_in_anchor=draft.total_amount_in_anchor,
        description=f"{'Sale' if is_sale else 'Purchase'} invoice #{invoice_id}",
        related_id=invoice_id,
    )


def _outcome(ws: _Workspace, **kwargs) -> SettlementOutcome:
    return SettlementOutcome(
        products=dict(ws.products),
        customers=dict(ws.parties[PartyKind.CUSTOMER]),
        suppliers=dict(ws.parties[PartyKind.SUPPLIER]),
        registers=dict(ws.registers),
        **kwargs,
    )


def settle_invoice(
    snapshot: LedgerSnapshot,
    draft: InvoiceDraft,
    original: Optional[Invoice] = None,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = new_cash_transaction_id,
) -> SettlementOutcome:
    """Compute the full effect of committing ``draft``.

    When ``original`` is given the draft replaces it: the original's effects
    are reversed first, its number and date are reused, and its cash audit
    row is dropped.

    Args:
        snapshot: Current state of the touched entities
        draft: Invoice to commit, with totals already computed
        original: Committed invoice being edited, if any
        now: Timestamp for new invoices and audit rows
        id_factory: Generator for cash transaction ids

    Returns:
        SettlementOutcome describing every mutation to persist

    Raises:
        ValidationError: On an invalid draft or insufficient stock
        NotFoundError: If a product, party or register does not exist
    """
    now = now or datetime.now(UTC)
    validate_draft(draft)

    ws = _Workspace(snapshot)
    if original is not None:
        _reverse(ws, original)

    _check_stock(ws, draft)

    if original is not None:
        number = parse_invoice_number(original.id)
        invoice_date = original.date
    else:
        number = snapshot.next_invoice_number
        invoice_date = now
    invoice_id = format_invoice_id(number)

    cash_row = _apply(ws, draft, invoice_id, now, id_factory)

    invoice = Invoice(
        id=invoice_id,
        date=invoice_date,
        type=draft.type,
        payment_type=draft.payment_type,
        items=tuple(draft.items),
        currency=draft.currency,
        total_amount=draft.total_amount,
        total_amount_in_anchor=draft.total_amount_in_anchor,
        customer_id=draft.customer_id,
        supplier_id=draft.supplier_id,
        cash_register_id=draft.cash_register_id,
        vendor_invoice_number=draft.vendor_invoice_number if not draft.type.is_sale else None,
    )
    return _outcome(
        ws,
        invoice=invoice,
        removed_invoice_id=original.id if original is not None else None,
        cash_transactions=(cash_row,) if cash_row is not None else (),
        next_invoice_number=number + 1 if original is None else None,
    )


def reverse_invoice(snapshot: LedgerSnapshot, original: Invoice) -> SettlementOutcome:
    """Compute the effect of deleting a committed invoice."""
    ws = _Workspace(snapshot)
    _reverse(ws, original)
    return _outcome(ws, invoice=None, removed_invoice_id=original.id)

"""Invoice domain service.

Loads a ledger snapshot, runs the pure settlement engine and persists the
outcome in one unit of work. ``process_invoice`` reports failures through
``SettlementResult`` instead of raising.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from loguru import logger

from tillbook.database.base import Database
from tillbook.domain.currency import quantize_money
from tillbook.domain.entities import (
    Currency,
    Invoice,
    InvoiceDraft,
    InvoiceItem,
    InvoiceType,
    PartyKind,
    PaymentType,
    Price,
    SettlementResult,
)
from tillbook.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    StorageError,
    ValidationError,
    invoice_not_found,
    product_not_found,
)
from tillbook.domain.settings import SettingsService
from tillbook.domain.settlement import (
    LedgerSnapshot,
    SettlementOutcome,
    reverse_invoice,
    settle_invoice,
)
from tillbook.domain.treasury import TreasuryService

STORAGE_FAILURE_MESSAGE = "Failed to save invoice; no changes were made"


@dataclass(frozen=True)
class LineRequest:
    """A requested invoice line: product, quantity and optional price override."""

    product_id: str
    quantity: Decimal
    unit_price: Optional[Price] = None


class InvoiceService:
    """Service for creating, editing and deleting invoices."""

    def __init__(self, db: Database):
        """Initialize invoice service.

        Args:
            db: Database instance
        """
        self.db = db
        self.settings = SettingsService(db)
        self.treasury = TreasuryService(db)

    def build_draft(
        self,
        invoice_type: InvoiceType,
        payment_type: PaymentType,
        currency: Currency,
        lines: Iterable[LineRequest],
        customer_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        cash_register_id: Optional[str] = None,
        vendor_invoice_number: Optional[str] = None,
        wholesale: bool = False,
    ) -> InvoiceDraft:
        """Price requested lines and compute the draft totals.

        Sales are priced from the selling (or wholesale) price, purchases
        from the cost price, unless a line carries its own unit price. Unit
        prices are converted into ``currency`` and rounded to 2 decimals.

        Raises:
            NotFoundError: If a product doesn't exist
            ConfigurationError: If exchange rates are unusable
        """
        invoice_type = InvoiceType(invoice_type)
        currency = Currency(currency)
        converter = self.settings.converter()

        items = []
        for line in lines:
            product = self.db.get_product(line.product_id)
            if product is None:
                raise NotFoundError(product_not_found(line.product_id))
            source = line.unit_price
            if source is None:
                if not invoice_type.is_sale:
                    source = product.cost_price
                elif wholesale:
                    source = product.wholesale_price
                else:
                    source = product.selling_price
            quantity = Decimal(line.quantity)
            unit_amount = quantize_money(converter.convert(source, currency))
            items.append(
                InvoiceItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price=Price(unit_amount, currency),
                    total_price=Price(quantize_money(unit_amount * quantity), currency),
                )
            )

        total = sum((item.total_price.amount for item in items), Decimal("0"))
        return InvoiceDraft(
            type=invoice_type,
            payment_type=PaymentType(payment_type),
            items=tuple(items),
            currency=currency,
            total_amount=total,
            total_amount_in_anchor=quantize_money(converter.to_anchor(Price(total, currency))),
            customer_id=customer_id,
            supplier_id=supplier_id,
            cash_register_id=cash_register_id,
            vendor_invoice_number=vendor_invoice_number,
        )

    def process_invoice(
        self,
        draft: InvoiceDraft,
        is_editing: bool = False,
        original_invoice: Optional[Invoice] = None,
    ) -> SettlementResult:
        """Settle a new or edited invoice atomically.

        Args:
            draft: Invoice content with totals already computed
            is_editing: Whether the draft replaces ``original_invoice``
            original_invoice: Committed invoice being edited

        Returns:
            SettlementResult with the invoice id on success, or the first
            error message with nothing retained
        """
        try:
            if is_editing and original_invoice is None:
                raise ValidationError("Editing requires the original invoice")
            with self.db.transaction():
                invoice = self._settle(draft, original_invoice if is_editing else None)
        except StorageError:
            logger.exception("Storage failure while saving invoice; rolled back")
            return SettlementResult(success=False, message=STORAGE_FAILURE_MESSAGE)
        except DomainError as e:
            logger.warning(f"Invoice rejected: {e}")
            return SettlementResult(success=False, message=str(e))

        verb = "updated" if is_editing else "saved"
        logger.info(
            f"Invoice {invoice.id} {verb}: {invoice.type.value} {invoice.payment_type.value} "
            f"{invoice.total_amount} {invoice.currency.value}"
        )
        return SettlementResult(success=True, message=f"Invoice {invoice.id} {verb}", invoice_id=invoice.id)

    def edit_invoice(self, invoice_id: str, draft: InvoiceDraft) -> SettlementResult:
        """Replace a committed invoice with ``draft``, keeping its number and date."""
        original = self.db.get_invoice(invoice_id)
        if original is None:
            return SettlementResult(success=False, message=invoice_not_found(invoice_id))
        return self.process_invoice(draft, is_editing=True, original_invoice=original)

    def checkout(
        self, draft: InvoiceDraft, partial_payment: Optional[Decimal] = None
    ) -> SettlementResult:
        """POS checkout: settle the invoice and, for credit, take a partial payment.

        The payment is recorded as PaymentReceived linked to the new invoice
        and is committed together with the invoice or not at all.
        """
        take_payment = (
            draft.payment_type is PaymentType.CREDIT
            and partial_payment is not None
            and partial_payment > 0
        )
        if take_payment and not draft.cash_register_id:
            return SettlementResult(success=False, message="A partial payment requires a cash register")
        if take_payment and partial_payment > draft.total_amount:
            return SettlementResult(
                success=False,
                message=f"Partial payment {partial_payment} exceeds the invoice total {draft.total_amount}",
            )

        try:
            with self.db.transaction():
                invoice = self._settle(draft, None)
                if take_payment:
                    self.treasury.record_payment(
                        "received",
                        draft.customer_id,
                        draft.cash_register_id,
                        partial_payment,
                        draft.currency,
                        linked_invoice_id=invoice.id,
                    )
        except StorageError:
            logger.exception("Storage failure during checkout; rolled back")
            return SettlementResult(success=False, message=STORAGE_FAILURE_MESSAGE)
        except DomainError as e:
            logger.warning(f"Checkout rejected: {e}")
            return SettlementResult(success=False, message=str(e))

        logger.info(f"Checkout completed with invoice {invoice.id}")
        return SettlementResult(success=True, message=f"Invoice {invoice.id} saved", invoice_id=invoice.id)

    def delete_invoice(self, invoice_id: str) -> None:
        """Reverse a committed invoice and remove it with its cash audit row.

        Raises:
            NotFoundError: If the invoice doesn't exist
        """
        with self.db.transaction():
            original = self.db.get_invoice(invoice_id)
            if original is None:
                raise NotFoundError(invoice_not_found(invoice_id))
            outcome = reverse_invoice(self._snapshot([original]), original)
            self._persist(outcome)
        logger.info(f"Invoice {invoice_id} deleted and reversed")

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Get invoice by ID."""
        return self.db.get_invoice(invoice_id)

    def list_invoices(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        invoice_type: Optional[InvoiceType] = None,
    ) -> list[Invoice]:
        """List invoices, optionally by inclusive date range and type."""
        types = (InvoiceType(invoice_type),) if invoice_type is not None else None
        return self.db.list_invoices(start_date=start_date, end_date=end_date, invoice_types=types)

    def get_next_invoice_number(self) -> int:
        """Number the next new invoice will receive."""
        return self.db.get_next_invoice_number()

    def wait_for_invoice(
        self, invoice_id: str, attempts: int = 5, delay: float = 0.2
    ) -> Optional[Invoice]:
        """Poll for a just-committed invoice a bounded number of times."""
        for attempt in range(attempts):
            invoice = self.db.get_invoice(invoice_id)
            if invoice is not None:
                return invoice
            if attempt < attempts - 1:
                time.sleep(delay)
        return None

    def _settle(self, draft: InvoiceDraft, original: Optional[Invoice]) -> Invoice:
        """Settle inside the caller's unit of work; raises on any failure."""
        sources = [draft] if original is None else [original, draft]
        outcome = settle_invoice(self._snapshot(sources), draft, original)
        if original is None and self.db.get_invoice(outcome.invoice.id) is not None:
            raise ConflictError(f"Invoice {outcome.invoice.id} already exists")
        self._persist(outcome)
        return outcome.invoice

    def _snapshot(self, sources: Iterable[Invoice | InvoiceDraft]) -> LedgerSnapshot:
        """Load every product, party and register the given invoices touch."""
        products, customers, suppliers, registers = {}, {}, {}, {}
        for source in sources:
            for item in source.items:
                product = self.db.get_product(item.product_id)
                if product is not None:
                    products[product.id] = product
            if source.customer_id:
                customer = self.db.get_party(PartyKind.CUSTOMER, source.customer_id)
                if customer is not None:
                    customers[customer.id] = customer
            if source.supplier_id:
                supplier = self.db.get_party(PartyKind.SUPPLIER, source.supplier_id)
                if supplier is not None:
                    suppliers[supplier.id] = supplier
            if source.cash_register_id:
                register = self.db.get_register(source.cash_register_id)
                if register is not None:
                    registers[register.id] = register
        return LedgerSnapshot(
            products=products,
            customers=customers,
            suppliers=suppliers,
            registers=registers,
            next_invoice_number=self.db.get_next_invoice_number(),
        )

    def _persist(self, outcome: SettlementOutcome) -> None:
        """Write a settlement outcome; must run inside a unit of work."""
        for product in outcome.products.values():
            self.db.update_product(product)
        for party in (*outcome.customers.values(), *outcome.suppliers.values()):
            self.db.update_party(party)
        for register in outcome.registers.values():
            self.db.update_register(register)

        if outcome.removed_invoice_id is not None:
            self.db.delete_cash_transactions_by_related_id(outcome.removed_invoice_id)
        if outcome.invoice is not None:
            self.db.save_invoice(outcome.invoice)
        elif outcome.removed_invoice_id is not None:
            self.db.delete_invoice(outcome.removed_invoice_id)

        for row in outcome.cash_transactions:
            self.db.add_cash_transaction(row)
        if outcome.next_invoice_number is not None:
            self.db.set_next_invoice_number(outcome.next_invoice_number)

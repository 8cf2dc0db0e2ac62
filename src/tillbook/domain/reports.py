"""Report domain service.

All monetary totals are in the anchor currency unless stated otherwise.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from tillbook.database.base import Database
from tillbook.domain.entities import (
    ZERO,
    CashTransaction,
    CashTransactionType,
    Currency,
    Invoice,
    InvoiceType,
    Party,
    PartyKind,
    PaymentType,
    Product,
)
from tillbook.domain.errors import NotFoundError, ValidationError, customer_not_found, supplier_not_found
from tillbook.domain.settings import SettingsService

SALE_TYPES = (InvoiceType.POS, InvoiceType.SALE)

INFLOW_TYPES = frozenset(
    {
        CashTransactionType.SALE,
        CashTransactionType.DEPOSIT,
        CashTransactionType.TRANSFER_IN,
        CashTransactionType.PAYMENT_RECEIVED,
        CashTransactionType.OPENING_BALANCE,
    }
)


@dataclass(frozen=True)
class InvoiceProfit:
    invoice: Invoice
    cost: Decimal
    profit: Decimal


@dataclass(frozen=True)
class ProfitAndLoss:
    """Sales, cost of goods sold, expenses and net profit for a period."""

    total_sales: Decimal
    total_cost: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    invoices: tuple[InvoiceProfit, ...] = ()


@dataclass(frozen=True)
class CashFlow:
    """Cash log entries of one day split into inflow and outflow."""

    cash_in: tuple[CashTransaction, ...]
    cash_out: tuple[CashTransaction, ...]
    total_in: Decimal
    total_out: Decimal

    @property
    def net_flow(self) -> Decimal:
        return self.total_in - self.total_out


@dataclass(frozen=True)
class ProductMovement:
    date: datetime
    invoice_id: str
    quantity_in: Decimal
    quantity_out: Decimal


@dataclass(frozen=True)
class ValuedProduct:
    product: Product
    unit_cost: Decimal
    value: Decimal


@dataclass(frozen=True)
class InventoryValuation:
    products: tuple[ValuedProduct, ...]
    total_value: Decimal


@dataclass
class BestSeller:
    product_id: str
    name: str
    quantity: Decimal = ZERO
    value: Decimal = ZERO


@dataclass(frozen=True)
class AgingEntry:
    party: Party
    currency: Currency
    balance: Decimal


@dataclass(frozen=True)
class AgingSummary:
    """Parties with a positive balance, one entry per currency."""

    customers: tuple[AgingEntry, ...] = field(default_factory=tuple)
    suppliers: tuple[AgingEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StatementLine:
    """One row of an account statement.

    ``debit`` is what the party owes (customer invoice, supplier payment);
    ``credit`` the reverse. ``balance`` is the running balance after the row.
    """

    date: datetime
    kind: Literal["invoice", "payment"]
    reference: str
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    linked_invoice_id: Optional[str] = None


class ReportService:
    """Service for building read-only business reports."""

    def __init__(self, db: Database):
        """Initialize report service.

        Args:
            db: Database instance
        """
        self.db = db
        self.settings = SettingsService(db)

    def profit_and_loss(self, start_date: date, end_date: date) -> ProfitAndLoss:
        """Profit and loss for an inclusive date range.

        Cost of goods uses each product's current cost price; lines whose
        product was deleted contribute no cost.
        """
        converter = self.settings.converter()
        products = {p.id: p for p in self.db.list_products()}
        invoices = self.db.list_invoices(start_date=start_date, end_date=end_date, invoice_types=SALE_TYPES)
        expenses = self.db.list_expenses(start_date=start_date, end_date=end_date)

        rows = []
        for invoice in invoices:
            cost = ZERO
            for item in invoice.items:
                product = products.get(item.product_id)
                if product is not None:
                    cost += converter.to_anchor(product.cost_price) * item.quantity
            rows.append(InvoiceProfit(invoice=invoice, cost=cost, profit=invoice.total_amount_in_anchor - cost))

        total_sales = sum((inv.total_amount_in_anchor for inv in invoices), ZERO)
        total_cost = sum((row.cost for row in rows), ZERO)
        total_expenses = sum((exp.amount_in_anchor for exp in expenses), ZERO)
        return ProfitAndLoss(
            total_sales=total_sales,
            total_cost=total_cost,
            total_expenses=total_expenses,
            net_profit=total_sales - total_cost - total_expenses,
            invoices=tuple(rows),
        )

    def daily_cash_flow(self, day: date, register_id: Optional[str] = None) -> CashFlow:
        """Cash in and out on one calendar day."""
        transactions = [
            t for t in self.db.list_cash_transactions(register_id=register_id) if t.date.date() == day
        ]
        cash_in = tuple(t for t in transactions if t.type in INFLOW_TYPES)
        cash_out = tuple(t for t in transactions if t.type not in INFLOW_TYPES)
        return CashFlow(
            cash_in=cash_in,
            cash_out=cash_out,
            total_in=sum((t.amount_in_anchor for t in cash_in), ZERO),
            total_out=sum((t.amount_in_anchor for t in cash_out), ZERO),
        )

    def product_movement(
        self,
        product_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ProductMovement]:
        """Stock movements of one product through invoices, oldest first."""
        movements = []
        for invoice in self.db.list_invoices(start_date=start_date, end_date=end_date):
            for item in invoice.items:
                if item.product_id != product_id:
                    continue
                is_sale = invoice.type.is_sale
                movements.append(
                    ProductMovement(
                        date=invoice.date,
                        invoice_id=invoice.id,
                        quantity_in=ZERO if is_sale else item.quantity,
                        quantity_out=item.quantity if is_sale else ZERO,
                    )
                )
        return movements

    def inventory_valuation(self) -> InventoryValuation:
        """Stock on hand valued at current cost price."""
        converter = self.settings.converter()
        rows = []
        for product in self.db.list_products():
            unit_cost = converter.to_anchor(product.cost_price)
            rows.append(ValuedProduct(product=product, unit_cost=unit_cost, value=unit_cost * product.stock))
        return InventoryValuation(products=tuple(rows), total_value=sum((r.value for r in rows), ZERO))

    def best_sellers(
        self,
        start_date: date,
        end_date: date,
        sort_by: Literal["quantity", "value"] = "quantity",
    ) -> list[BestSeller]:
        """Products ranked by quantity sold or by sales value."""
        if sort_by not in ("quantity", "value"):
            raise ValidationError(f"Cannot sort best sellers by '{sort_by}'")
        converter = self.settings.converter()
        sellers: dict[str, BestSeller] = {}
        for invoice in self.db.list_invoices(start_date=start_date, end_date=end_date, invoice_types=SALE_TYPES):
            for item in invoice.items:
                entry = sellers.setdefault(item.product_id, BestSeller(item.product_id, item.product_name))
                entry.quantity += item.quantity
                entry.value += converter.to_anchor(item.total_price)
        return sorted(sellers.values(), key=lambda s: getattr(s, sort_by), reverse=True)

    def aging_summary(self) -> AgingSummary:
        """Receivables and payables, one entry per positive currency balance."""

        def entries(kind: PartyKind) -> tuple[AgingEntry, ...]:
            return tuple(
                AgingEntry(party=party, currency=currency, balance=balance)
                for party in self.db.list_parties(kind)
                for currency, balance in party.balances.items()
                if balance > 0
            )

        return AgingSummary(customers=entries(PartyKind.CUSTOMER), suppliers=entries(PartyKind.SUPPLIER))

    def account_statement(
        self, kind: PartyKind, party_id: str, currency: Currency
    ) -> list[StatementLine]:
        """Credit invoices and payments of a party in one currency with a running balance.

        Raises:
            NotFoundError: If the party doesn't exist
        """
        party = self.db.get_party(kind, party_id)
        if party is None:
            message = customer_not_found if kind is PartyKind.CUSTOMER else supplier_not_found
            raise NotFoundError(message(party_id))
        currency = Currency(currency)
        is_customer = kind is PartyKind.CUSTOMER

        events: list[tuple[datetime, str, str, str, Decimal, Optional[str]]] = []
        for invoice in self.db.list_invoices():
            if invoice.payment_type is not PaymentType.CREDIT or invoice.currency is not currency:
                continue
            if invoice.party_id != party_id or invoice.type.is_sale != is_customer:
                continue
            events.append((invoice.date, "invoice", invoice.id, f"Invoice {invoice.id}", invoice.total_amount, None))

        payment_type = CashTransactionType.PAYMENT_RECEIVED if is_customer else CashTransactionType.PAYMENT_MADE
        for row in self.db.list_cash_transactions(related_id=party_id):
            if row.type is payment_type and row.currency is currency:
                events.append((row.date, "payment", row.id, row.description, row.amount, row.linked_invoice_id))

        lines = []
        running = ZERO
        for when, event_kind, reference, description, amount, linked in sorted(events, key=lambda e: e[0]):
            if event_kind == "invoice":
                running += amount
            else:
                running -= amount
            owed_by_party = (event_kind == "invoice") == is_customer
            lines.append(
                StatementLine(
                    date=when,
                    kind=event_kind,
                    reference=reference,
                    description=description,
                    debit=amount if owed_by_party else ZERO,
                    credit=ZERO if owed_by_party else amount,
                    balance=running,
                    linked_invoice_id=linked,
                )
            )
        return lines


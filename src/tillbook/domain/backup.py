"""Backup and restore of the whole store as one JSON document.

The document uses the same top-level keys and camelCase field names as
backups written by the original point-of-sale application, so those
files can be restored or merged here too.
"""

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from dateutil.parser import isoparse
from loguru import logger

from tillbook.database.base import Database
from tillbook.domain.entities import (
    Balances,
    CashRegister,
    CashTransaction,
    CashTransactionType,
    Category,
    Currency,
    Expense,
    ExpenseCategory,
    Invoice,
    InvoiceItem,
    InvoiceType,
    Party,
    PartyKind,
    PaymentType,
    Price,
    Product,
)
from tillbook.domain.errors import ValidationError
from tillbook.domain.settings import COMPANY_INFO_KEY, EXCHANGE_RATES_KEY
from tillbook.domain.settlement import parse_invoice_number

BACKUP_VERSION = 1


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _timestamp(value: str) -> datetime:
    """Parse an ISO timestamp into naive UTC, matching what the store returns."""
    parsed = isoparse(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def _isoformat(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.isoformat()


def _price_to_dict(price: Price) -> dict[str, Any]:
    return {"amount": str(price.amount), "currency": price.currency.value}


def _price_from_dict(data: Mapping[str, Any]) -> Price:
    return Price(amount=_decimal(data["amount"]), currency=Currency(data["currency"]))


def category_to_dict(category: Category) -> dict[str, Any]:
    return {"id": category.id, "name": category.name, "parentId": category.parent_id}


def category_from_dict(data: Mapping[str, Any]) -> Category:
    return Category(id=data["id"], name=data["name"], parent_id=data.get("parentId"))


def product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "sku": product.sku,
        "stock": str(product.stock),
        "costPrice": _price_to_dict(product.cost_price),
        "wholesalePrice": _price_to_dict(product.wholesale_price),
        "sellingPrice": _price_to_dict(product.selling_price),
        "categoryId": product.category_id,
    }


def product_from_dict(data: Mapping[str, Any]) -> Product:
    selling = _price_from_dict(data["sellingPrice"])
    wholesale = data.get("wholesalePrice")
    return Product(
        id=data["id"],
        name=data["name"],
        sku=data.get("sku") or None,
        stock=_decimal(data.get("stock")),
        cost_price=_price_from_dict(data["costPrice"]),
        wholesale_price=_price_from_dict(wholesale) if wholesale else selling,
        selling_price=selling,
        category_id=data.get("categoryId") or None,
    )


def party_to_dict(party: Party) -> dict[str, Any]:
    return {
        "id": party.id,
        "name": party.name,
        "phone": party.phone,
        "balances": party.balances.to_json_dict(),
    }


def party_from_dict(kind: PartyKind) -> Callable[[Mapping[str, Any]], Party]:
    def parse(data: Mapping[str, Any]) -> Party:
        return Party(
            id=data["id"],
            kind=kind,
            name=data["name"],
            phone=data.get("phone") or None,
            balances=Balances.from_json_dict(data.get("balances")),
        )

    return parse


def register_to_dict(register: CashRegister) -> dict[str, Any]:
    return {"id": register.id, "name": register.name, "balances": register.balances.to_json_dict()}


def register_from_dict(data: Mapping[str, Any]) -> CashRegister:
    return CashRegister(
        id=data["id"], name=data["name"], balances=Balances.from_json_dict(data.get("balances"))
    )


def cash_transaction_to_dict(txn: CashTransaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "date": _isoformat(txn.date),
        "registerId": txn.register_id,
        "type": txn.type.value,
        "amount": str(txn.amount),
        "currency": txn.currency.value,
        "amountInSyp": str(txn.amount_in_anchor),
        "description": txn.description,
        "relatedId": txn.related_id,
        "linkedInvoiceId": txn.linked_invoice_id,
    }


def cash_transaction_from_dict(data: Mapping[str, Any]) -> CashTransaction:
    return CashTransaction(
        id=data["id"],
        date=_timestamp(data["date"]),
        register_id=data["registerId"],
        type=CashTransactionType(data["type"]),
        amount=_decimal(data["amount"]),
        currency=Currency(data["currency"]),
        amount_in_anchor=_decimal(data.get("amountInSyp")),
        description=data.get("description") or "",
        related_id=data.get("relatedId"),
        linked_invoice_id=data.get("linkedInvoiceId"),
    )


def invoice_to_dict(invoice: Invoice) -> dict[str, Any]:
    return {
        "id": invoice.id,
        "date": _isoformat(invoice.date),
        "items": [
            {
                "productId": item.product_id,
                "productName": item.product_name,
                "quantity": str(item.quantity),
                "unitPrice": _price_to_dict(item.unit_price),
                "totalPrice": _price_to_dict(item.total_price),
            }
            for item in invoice.items
        ],
        "totalAmount": str(invoice.total_amount),
        "currency": invoice.currency.value,
        "paymentType": invoice.payment_type.value,
        "totalAmountInSyp": str(invoice.total_amount_in_anchor),
        "customerId": invoice.customer_id,
        "supplierId": invoice.supplier_id,
        "type": invoice.type.value,
        "cashRegisterId": invoice.cash_register_id,
        "vendorInvoiceNumber": invoice.vendor_invoice_number,
    }


def invoice_from_dict(data: Mapping[str, Any]) -> Invoice:
    parse_invoice_number(data["id"])
    return Invoice(
        id=data["id"],
        date=_timestamp(data["date"]),
        type=InvoiceType(data["type"]),
        payment_type=PaymentType(data["paymentType"]),
        items=tuple(
            InvoiceItem(
                product_id=item["productId"],
                product_name=item["productName"],
                quantity=_decimal(item["quantity"]),
                unit_price=_price_from_dict(item["unitPrice"]),
                total_price=_price_from_dict(item["totalPrice"]),
            )
            for item in data.get("items") or ()
        ),
        currency=Currency(data["currency"]),
        total_amount=_decimal(data["totalAmount"]),
        total_amount_in_anchor=_decimal(data.get("totalAmountInSyp")),
        customer_id=data.get("customerId") or None,
        supplier_id=data.get("supplierId") or None,
        cash_register_id=data.get("cashRegisterId") or None,
        vendor_invoice_number=data.get("vendorInvoiceNumber") or None,
    )


def expense_category_to_dict(category: ExpenseCategory) -> dict[str, Any]:
    return {"id": category.id, "name": category.name}


def expense_category_from_dict(data: Mapping[str, Any]) -> ExpenseCategory:
    return ExpenseCategory(id=data["id"], name=data["name"])


def expense_to_dict(expense: Expense) -> dict[str, Any]:
    return {
        "id": expense.id,
        "date": _isoformat(expense.date),
        "description": expense.description,
        "categoryId": expense.category_id,
        "cashRegisterId": expense.cash_register_id,
        "amount": str(expense.amount),
        "currency": expense.currency.value,
        "amountInSyp": str(expense.amount_in_anchor),
    }


def expense_from_dict(data: Mapping[str, Any]) -> Expense:
    return Expense(
        id=data["id"],
        date=_timestamp(data["date"]),
        description=data.get("description") or "",
        category_id=data.get("categoryId") or None,
        cash_register_id=data["cashRegisterId"],
        amount=_decimal(data["amount"]),
        currency=Currency(data["currency"]),
        amount_in_anchor=_decimal(data.get("amountInSyp")),
    )


@dataclass(frozen=True)
class BackupContents:
    """A parsed backup document."""

    categories: tuple[Category, ...] = ()
    products: tuple[Product, ...] = ()
    customers: tuple[Party, ...] = ()
    suppliers: tuple[Party, ...] = ()
    registers: tuple[CashRegister, ...] = ()
    cash_transactions: tuple[CashTransaction, ...] = ()
    invoices: tuple[Invoice, ...] = ()
    expense_categories: tuple[ExpenseCategory, ...] = ()
    expenses: tuple[Expense, ...] = ()
    next_invoice_number: Optional[int] = None
    rates: Optional[dict[str, Any]] = None
    company_info: Optional[dict[str, Any]] = None

    @property
    def highest_invoice_number(self) -> int:
        return max((parse_invoice_number(inv.id) for inv in self.invoices), default=0)


def parse_backup(document: str) -> BackupContents:
    """Parse and validate a backup document without touching the store.

    Raises:
        ValidationError: If the document is not a valid backup
    """
    try:
        data = json.loads(document)
        if not isinstance(data, dict):
            raise ValidationError("Backup must be a JSON object")

        def rows(key, parse):
            return tuple(parse(item) for item in data.get(key) or ())

        next_number = data.get("nextInvoiceNumber")
        return BackupContents(
            categories=rows("categories", category_from_dict),
            products=rows("products", product_from_dict),
            customers=rows("customers", party_from_dict(PartyKind.CUSTOMER)),
            suppliers=rows("suppliers", party_from_dict(PartyKind.SUPPLIER)),
            registers=rows("cashRegisters", register_from_dict),
            cash_transactions=rows("cashTransactions", cash_transaction_from_dict),
            invoices=rows("invoices", invoice_from_dict),
            expense_categories=rows("expenseCategories", expense_category_from_dict),
            expenses=rows("expenses", expense_from_dict),
            next_invoice_number=int(next_number) if next_number is not None else None,
            rates=data.get("rates"),
            company_info=data.get("companyInfo"),
        )
    except ValidationError as e:
        raise ValidationError(f"Invalid backup file: {e}") from e
    except (ValueError, KeyError, TypeError, InvalidOperation) as e:
        raise ValidationError(f"Invalid backup file: {e!r}") from e


@dataclass
class MergeSummary:
    """Counts of rows imported and skipped (already present) per table."""

    imported: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)

    def record(self, table: str, imported: bool) -> None:
        bucket = self.imported if imported else self.skipped
        bucket[table] = bucket.get(table, 0) + 1

    @property
    def total_imported(self) -> int:
        return sum(self.imported.values())


class BackupService:
    """Service for exporting, restoring and merging whole-store backups."""

    def __init__(self, db: Database):
        """Initialize backup service.

        Args:
            db: Database instance
        """
        self.db = db

    def backup(self) -> str:
        """Serialize every table, the invoice counter and settings to JSON."""
        data = {
            "version": BACKUP_VERSION,
            "createdAt": _isoformat(datetime.now(UTC)),
            "products": [product_to_dict(p) for p in self.db.list_products()],
            "categories": [category_to_dict(c) for c in self.db.list_categories()],
            "invoices": [invoice_to_dict(inv) for inv in self.db.list_invoices()],
            "nextInvoiceNumber": self.db.get_next_invoice_number(),
            "customers": [party_to_dict(p) for p in self.db.list_parties(PartyKind.CUSTOMER)],
            "suppliers": [party_to_dict(p) for p in self.db.list_parties(PartyKind.SUPPLIER)],
            "expenseCategories": [expense_category_to_dict(c) for c in self.db.list_expense_categories()],
            "expenses": [expense_to_dict(e) for e in self.db.list_expenses()],
            "cashRegisters": [register_to_dict(r) for r in self.db.list_registers()],
            "cashTransactions": [cash_transaction_to_dict(t) for t in self.db.list_cash_transactions()],
            "rates": self.db.get_setting(EXCHANGE_RATES_KEY),
            "companyInfo": self.db.get_setting(COMPANY_INFO_KEY),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def restore(self, document: str) -> BackupContents:
        """Replace the whole store with a backup, atomically.

        Raises:
            ValidationError: If the document is invalid (store untouched)
            StorageError: If writing fails (store rolled back)
        """
        contents = parse_backup(document)

        with self.db.transaction():
            self.db.clear_all()
            for category in contents.categories:
                self.db.add_category(category)
            for product in contents.products:
                self.db.add_product(product)
            for party in (*contents.customers, *contents.suppliers):
                self.db.add_party(party)
            for register in contents.registers:
                self.db.add_register(register)
            for category in contents.expense_categories:
                self.db.add_expense_category(category)
            for expense in contents.expenses:
                self.db.add_expense(expense)
            for txn in contents.cash_transactions:
                self.db.add_cash_transaction(txn)
            for invoice in contents.invoices:
                self.db.save_invoice(invoice)

            counter = max(contents.next_invoice_number or 1, contents.highest_invoice_number + 1)
            self.db.set_next_invoice_number(counter)
            if contents.rates:
                self.db.set_setting(EXCHANGE_RATES_KEY, contents.rates)
            if contents.company_info:
                self.db.set_setting(COMPANY_INFO_KEY, contents.company_info)
            # Backups made before the defaults existed lack the walk-in customer or main register
            self.db.initialize_schema()

        logger.info(
            f"Restored backup: {len(contents.products)} products, {len(contents.invoices)} invoices, "
            f"{len(contents.cash_transactions)} cash transactions"
        )
        return contents

    def restore_merge(self, document: str) -> MergeSummary:
        """Add rows from a backup whose ids are not yet present.

        Existing rows, stock levels and balances are never changed; merged
        invoices and expenses are history only. Cash registers and cash
        transactions are not merged; expenses for unknown registers are
        skipped.
        """
        contents = parse_backup(document)
        summary = MergeSummary()

        with self.db.transaction():
            for category in contents.categories:
                new = self.db.get_category(category.id) is None
                if new:
                    self.db.add_category(category)
                summary.record("categories", new)
            for product in contents.products:
                new = self.db.get_product(product.id) is None and (
                    product.sku is None or self.db.get_product_by_sku(product.sku) is None
                )
                if new:
                    self.db.add_product(product)
                summary.record("products", new)
            for table, parties in (("customers", contents.customers), ("suppliers", contents.suppliers)):
                for party in parties:
                    new = self.db.get_party(party.kind, party.id) is None
                    if new:
                        self.db.add_party(party)
                    summary.record(table, new)
            for category in contents.expense_categories:
                new = self.db.get_expense_category(category.id) is None
                if new:
                    self.db.add_expense_category(category)
                summary.record("expenseCategories", new)

            existing_expenses = {e.id for e in self.db.list_expenses()}
            for expense in contents.expenses:
                new = (
                    expense.id not in existing_expenses
                    and self.db.get_register(expense.cash_register_id) is not None
                )
                if new:
                    self.db.add_expense(expense)
                summary.record("expenses", new)

            merged_numbers = []
            for invoice in contents.invoices:
                new = self.db.get_invoice(invoice.id) is None
                if new:
                    self.db.save_invoice(invoice)
                    merged_numbers.append(parse_invoice_number(invoice.id))
                summary.record("invoices", new)

            if merged_numbers:
                counter = max(self.db.get_next_invoice_number(), max(merged_numbers) + 1)
                self.db.set_next_invoice_number(counter)

        if summary.imported.get("invoices") or summary.imported.get("expenses"):
            logger.warning(
                "Merged invoices and expenses do not adjust stock, party or register balances"
            )
        logger.info(f"Merged backup: imported {summary.imported}, skipped {summary.skipped}")
        return summary

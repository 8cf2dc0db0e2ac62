"""Abstract database interface (storage port)."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import Optional, Any

# Import entities directly to avoid circular import through domain/__init__.py
from tillbook.domain.entities import (
    CashRegister,
    CashTransaction,
    Category,
    Expense,
    ExpenseCategory,
    Invoice,
    InvoiceType,
    Party,
    PartyKind,
    Product,
)


class Database(ABC):
    """Abstract database interface for tillbook.

    Write methods commit immediately unless called inside ``transaction()``,
    in which case everything commits or rolls back together.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Create tables and seed default rows (idempotent)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Open a unit of work.

        Commits on normal exit, rolls back on any exception. Nested calls
        join the outermost unit of work.
        """
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Delete every business row (used by full restore)."""
        pass

    # Category operations
    @abstractmethod
    def add_category(self, category: Category) -> None:
        """Insert a product category."""
        pass

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """List all categories."""
        pass

    # Product operations
    @abstractmethod
    def add_product(self, product: Product) -> None:
        """Insert a product."""
        pass

    @abstractmethod
    def update_product(self, product: Product) -> None:
        """Overwrite every field of an existing product, stock included."""
        pass

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        """Get product by ID."""
        pass

    @abstractmethod
    def get_product_by_sku(self, sku: str) -> Optional[Product]:
        """Get product by SKU."""
        pass

    @abstractmethod
    def list_products(self) -> list[Product]:
        """List all products."""
        pass

    @abstractmethod
    def delete_product(self, product_id: str) -> None:
        """Delete a product."""
        pass

    # Party operations
    @abstractmethod
    def add_party(self, party: Party) -> None:
        """Insert a customer or supplier (table chosen by ``party.kind``)."""
        pass

    @abstractmethod
    def update_party(self, party: Party) -> None:
        """Overwrite name, phone and balances of a customer or supplier."""
        pass

    @abstractmethod
    def get_party(self, kind: PartyKind, party_id: str) -> Optional[Party]:
        """Get customer or supplier by ID."""
        pass

    @abstractmethod
    def list_parties(self, kind: PartyKind) -> list[Party]:
        """List all customers or all suppliers."""
        pass

    @abstractmethod
    def delete_party(self, kind: PartyKind, party_id: str) -> None:
        """Delete a customer or supplier."""
        pass

    # Cash register operations
    @abstractmethod
    def add_register(self, register: CashRegister) -> None:
        """Insert a cash register."""
        pass

    @abstractmethod
    def update_register(self, register: CashRegister) -> None:
        """Overwrite name and balances of a cash register."""
        pass

    @abstractmethod
    def get_register(self, register_id: str) -> Optional[CashRegister]:
        """Get cash register by ID."""
        pass

    @abstractmethod
    def list_registers(self) -> list[CashRegister]:
        """List all cash registers."""
        pass

    # Cash transaction operations
    @abstractmethod
    def add_cash_transaction(self, transaction: CashTransaction) -> None:
        """Append a row to the cash audit log."""
        pass

    @abstractmethod
    def list_cash_transactions(
        self,
        register_id: Optional[str] = None,
        related_id: Optional[str] = None,
    ) -> list[CashTransaction]:
        """List audit rows in chronological order, optionally filtered."""
        pass

    @abstractmethod
    def delete_cash_transactions_by_related_id(self, related_id: str) -> int:
        """Delete audit rows tied to an entity. Returns number deleted."""
        pass

    # Invoice operations
    @abstractmethod
    def save_invoice(self, invoice: Invoice) -> None:
        """Insert or update an invoice header and replace its items."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Get invoice with items by ID."""
        pass

    @abstractmethod
    def list_invoices(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        invoice_types: Optional[tuple[InvoiceType, ...]] = None,
    ) -> list[Invoice]:
        """List invoices with items in chronological order.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            invoice_types: Optional invoice types to include
        """
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: str) -> None:
        """Delete an invoice and its items."""
        pass

    @abstractmethod
    def get_next_invoice_number(self) -> int:
        """Read the invoice sequence counter."""
        pass

    @abstractmethod
    def set_next_invoice_number(self, number: int) -> None:
        """Overwrite the invoice sequence counter."""
        pass

    # Expense operations
    @abstractmethod
    def add_expense_category(self, category: ExpenseCategory) -> None:
        """Insert an expense category."""
        pass

    @abstractmethod
    def get_expense_category(self, category_id: str) -> Optional[ExpenseCategory]:
        """Get expense category by ID."""
        pass

    @abstractmethod
    def list_expense_categories(self) -> list[ExpenseCategory]:
        """List all expense categories."""
        pass

    @abstractmethod
    def add_expense(self, expense: Expense) -> None:
        """Insert an expense."""
        pass

    @abstractmethod
    def list_expenses(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[Expense]:
        """List expenses in chronological order."""
        pass

    # Settings operations
    @abstractmethod
    def get_setting(self, key: str) -> Optional[Any]:
        """Get a JSON-decoded setting value, or None if unset."""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Any) -> None:
        """Store a JSON-encodable setting value."""
        pass

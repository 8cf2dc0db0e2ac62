"""Generic SQLAlchemy database implementation."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Optional, Any
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from tillbook.database.base import Database
from tillbook.database.models import (
    Category,
    Product,
    Customer,
    Supplier,
    CashRegister,
    CashTransaction,
    Invoice,
    InvoiceItem,
    ExpenseCategory,
    Expense,
    Setting,
    InternalSetting,
    create_session_factory,
)
from tillbook.database.mappers import (
    category_to_domain,
    product_to_domain,
    party_to_domain,
    register_to_domain,
    cash_transaction_to_domain,
    cash_transaction_to_orm,
    invoice_to_domain,
    invoice_item_to_orm,
    expense_category_to_domain,
    expense_to_domain,
)
from tillbook.domain import entities as domain
from tillbook.domain.errors import (
    NotFoundError,
    StorageError,
    customer_not_found,
    invoice_not_found,
    product_not_found,
    register_not_found,
    supplier_not_found,
)

NEXT_INVOICE_NUMBER_KEY = "nextInvoiceNumber"
EXCHANGE_RATES_KEY = "exchangeRates"
DEFAULT_EXCHANGE_RATES = {"USD": "14000", "TRY": "450"}

_PARTY_MODELS = {
    domain.PartyKind.CUSTOMER: Customer,
    domain.PartyKind.SUPPLIER: Supplier,
}

# Child tables first so that deletes never orphan a parent reference
_BUSINESS_MODELS = (
    InvoiceItem,
    Invoice,
    CashTransaction,
    Expense,
    ExpenseCategory,
    Product,
    Category,
    Customer,
    Supplier,
    CashRegister,
)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min)


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(self, database_url: str):
        """Initialize SQLAlchemy database.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
        """
        self.database_url = database_url
        self.session_factory = create_session_factory(database_url)
        self._session: Optional[Session] = None
        self._transaction_depth = 0

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def _commit(self) -> None:
        """Commit now, or just flush when inside a unit of work."""
        session = self._get_session()
        try:
            if self._transaction_depth:
                session.flush()
            else:
                session.commit()
        except SQLAlchemyError as e:
            if not self._transaction_depth:
                session.rollback()
            raise StorageError(f"Database error: {e}") from e

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def initialize_schema(self) -> None:
        """Seed default rows. Tables are created by create_session_factory."""
        session = self._get_session()
        if session.get(InternalSetting, NEXT_INVOICE_NUMBER_KEY) is None:
            session.add(InternalSetting(key=NEXT_INVOICE_NUMBER_KEY, value="1"))
        if session.get(CashRegister, domain.DEFAULT_REGISTER_ID) is None:
            session.add(
                CashRegister(
                    id=domain.DEFAULT_REGISTER_ID,
                    name="Main register",
                    balances=domain.Balances(),
                )
            )
        if session.get(Customer, domain.CASH_CUSTOMER_ID) is None:
            session.add(
                Customer(
                    id=domain.CASH_CUSTOMER_ID,
                    name="Walk-in customer",
                    phone="",
                    balances=domain.Balances(),
                )
            )
        if session.get(Setting, EXCHANGE_RATES_KEY) is None:
            session.add(Setting(key=EXCHANGE_RATES_KEY, value=json.dumps(DEFAULT_EXCHANGE_RATES)))
        self._commit()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed operations as one atomic unit of work."""
        session = self._get_session()
        outermost = self._transaction_depth == 0
        self._transaction_depth += 1
        try:
            yield
            if outermost:
                session.commit()
        except Exception as e:
            if outermost:
                session.rollback()
            if isinstance(e, SQLAlchemyError):
                raise StorageError(f"Database error: {e}") from e
            raise
        finally:
            self._transaction_depth -= 1

    def clear_all(self) -> None:
        """Delete every business row."""
        session = self._get_session()
        for model in _BUSINESS_MODELS:
            session.query(model).delete(synchronize_session=False)
        # Deleted rows may still sit in the identity map; drop them so ids can be reused
        session.expunge_all()
        self._commit()

    # Category operations
    def add_category(self, category: domain.Category) -> None:
        """Insert a product category."""
        session = self._get_session()
        session.add(Category(id=category.id, name=category.name, parent_id=category.parent_id))
        self._commit()

    def get_category(self, category_id: str) -> Optional[domain.Category]:
        """Get category by ID."""
        session = self._get_session()
        cat = session.get(Category, category_id)
        if cat is None:
            return None
        return category_to_domain(cat)

    def list_categories(self) -> list[domain.Category]:
        """List all categories."""
        session = self._get_session()
        categories = session.query(Category).order_by(Category.name).all()
        return [category_to_domain(cat) for cat in categories]

    # Product operations
    def add_product(self, product: domain.Product) -> None:
        """Insert a product."""
        session = self._get_session()
        row = Product(id=product.id)
        self._fill_product(row, product)
        session.add(row)
        self._commit()

    def update_product(self, product: domain.Product) -> None:
        """Overwrite every field of an existing product."""
        session = self._get_session()
        row = session.get(Product, product.id)
        if row is None:
            raise NotFoundError(product_not_found(product.id))
        self._fill_product(row, product)
        self._commit()

    @staticmethod
    def _fill_product(row: Product, product: domain.Product) -> None:
        row.name = product.name
        row.sku = product.sku
        row.stock = product.stock
        row.cost_price = product.cost_price
        row.wholesale_price = product.wholesale_price
        row.selling_price = product.selling_price
        row.category_id = product.category_id

    def get_product(self, product_id: str) -> Optional[domain.Product]:
        """Get product by ID."""
        session = self._get_session()
        row = session.get(Product, product_id)
        if row is None:
            return None
        return product_to_domain(row)

    def get_product_by_sku(self, sku: str) -> Optional[domain.Product]:
        """Get product by SKU."""
        session = self._get_session()
        row = session.query(Product).filter(Product.sku == sku).first()
        if row is None:
            return None
        return product_to_domain(row)

    def list_products(self) -> list[domain.Product]:
        """List all products."""
        session = self._get_session()
        products = session.query(Product).order_by(Product.name).all()
        return [product_to_domain(p) for p in products]

    def delete_product(self, product_id: str) -> None:
        """Delete a product."""
        session = self._get_session()
        row = session.get(Product, product_id)
        if row is None:
            raise NotFoundError(product_not_found(product_id))
        session.delete(row)
        self._commit()

    # Party operations
    def add_party(self, party: domain.Party) -> None:
        """Insert a customer or supplier."""
        session = self._get_session()
        model = _PARTY_MODELS[party.kind]
        session.add(model(id=party.id, name=party.name, phone=party.phone, balances=party.balances))
        self._commit()

    def update_party(self, party: domain.Party) -> None:
        """Overwrite name, phone and balances of a customer or supplier."""
        session = self._get_session()
        row = session.get(_PARTY_MODELS[party.kind], party.id)
        if row is None:
            raise NotFoundError(self._party_not_found(party.kind, party.id))
        row.name = party.name
        row.phone = party.phone
        row.balances = party.balances
        self._commit()

    @staticmethod
    def _party_not_found(kind: domain.PartyKind, party_id: str) -> str:
        if kind is domain.PartyKind.CUSTOMER:
            return customer_not_found(party_id)
        return supplier_not_found(party_id)

    def get_party(self, kind: domain.PartyKind, party_id: str) -> Optional[domain.Party]:
        """Get customer or supplier by ID."""
        session = self._get_session()
        row = session.get(_PARTY_MODELS[kind], party_id)
        if row is None:
            return None
        return party_to_domain(row)

    def list_parties(self, kind: domain.PartyKind) -> list[domain.Party]:
        """List all customers or all suppliers."""
        session = self._get_session()
        model = _PARTY_MODELS[kind]
        rows = session.query(model).order_by(model.name).all()
        return [party_to_domain(row) for row in rows]

    def delete_party(self, kind: domain.PartyKind, party_id: str) -> None:
        """Delete a customer or supplier."""
        session = self._get_session()
        row = session.get(_PARTY_MODELS[kind], party_id)
        if row is None:
            raise NotFoundError(self._party_not_found(kind, party_id))
        session.delete(row)
        self._commit()

    # Cash register operations
    def add_register(self, register: domain.CashRegister) -> None:
        """Insert a cash register."""
        session = self._get_session()
        session.add(CashRegister(id=register.id, name=register.name, balances=register.balances))
        self._commit()

    def update_register(self, register: domain.CashRegister) -> None:
        """Overwrite name and balances of a cash register."""
        session = self._get_session()
        row = session.get(CashRegister, register.id)
        if row is None:
            raise NotFoundError(register_not_found(register.id))
        row.name = register.name
        row.balances = register.balances
        self._commit()

    def get_register(self, register_id: str) -> Optional[domain.CashRegister]:
        """Get cash register by ID."""
        session = self._get_session()
        row = session.get(CashRegister, register_id)
        if row is None:
            return None
        return register_to_domain(row)

    def list_registers(self) -> list[domain.CashRegister]:
        """List all cash registers."""
        session = self._get_session()
        rows = session.query(CashRegister).order_by(CashRegister.name).all()
        return [register_to_domain(row) for row in rows]

    # Cash transaction operations
    def add_cash_transaction(self, transaction: domain.CashTransaction) -> None:
        """Append a row to the cash audit log."""
        session = self._get_session()
        session.add(cash_transaction_to_orm(transaction))
        self._commit()

    def list_cash_transactions(
        self,
        register_id: Optional[str] = None,
        related_id: Optional[str] = None,
    ) -> list[domain.CashTransaction]:
        """List audit rows in chronological order, optionally filtered."""
        session = self._get_session()
        query = session.query(CashTransaction)
        if register_id is not None:
            query = query.filter(CashTransaction.register_id == register_id)
        if related_id is not None:
            query = query.filter(CashTransaction.related_id == related_id)
        rows = query.order_by(CashTransaction.date, CashTransaction.id).all()
        return [cash_transaction_to_domain(row) for row in rows]

    def delete_cash_transactions_by_related_id(self, related_id: str) -> int:
        """Delete audit rows tied to an entity. Returns number deleted."""
        session = self._get_session()
        deleted = (
            session.query(CashTransaction)
            .filter(CashTransaction.related_id == related_id)
            .delete(synchronize_session="fetch")
        )
        self._commit()
        return deleted

    # Invoice operations
    def save_invoice(self, invoice: domain.Invoice) -> None:
        """Insert or update an invoice header and replace its items."""
        session = self._get_session()
        row = session.get(Invoice, invoice.id)
        if row is None:
            row = Invoice(id=invoice.id)
            session.add(row)
        row.date = invoice.date
        row.type = invoice.type.value
        row.payment_type = invoice.payment_type.value
        row.currency = invoice.currency.value
        row.total_amount = invoice.total_amount
        row.total_amount_in_anchor = invoice.total_amount_in_anchor
        row.customer_id = invoice.customer_id
        row.supplier_id = invoice.supplier_id
        row.cash_register_id = invoice.cash_register_id
        row.vendor_invoice_number = invoice.vendor_invoice_number or None
        row.items = [invoice_item_to_orm(item) for item in invoice.items]
        self._commit()

    def get_invoice(self, invoice_id: str) -> Optional[domain.Invoice]:
        """Get invoice with items by ID."""
        session = self._get_session()
        row = session.get(Invoice, invoice_id)
        if row is None:
            return None
        return invoice_to_domain(row)

    def list_invoices(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        invoice_types: Optional[tuple[domain.InvoiceType, ...]] = None,
    ) -> list[domain.Invoice]:
        """List invoices with items in chronological order."""
        session = self._get_session()
        query = session.query(Invoice).options(selectinload(Invoice.items))

        if start_date is not None:
            query = query.filter(Invoice.date >= _day_start(start_date))
        if end_date is not None:
            query = query.filter(Invoice.date < _day_start(end_date + timedelta(days=1)))
        if invoice_types:
            query = query.filter(Invoice.type.in_([t.value for t in invoice_types]))

        rows = query.order_by(Invoice.date, Invoice.id).all()
        return [invoice_to_domain(row) for row in rows]

    def delete_invoice(self, invoice_id: str) -> None:
        """Delete an invoice and its items."""
        session = self._get_session()
        row = session.get(Invoice, invoice_id)
        if row is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        session.delete(row)
        self._commit()

    def get_next_invoice_number(self) -> int:
        """Read the invoice sequence counter."""
        session = self._get_session()
        row = session.get(InternalSetting, NEXT_INVOICE_NUMBER_KEY)
        if row is None or row.value is None:
            return 1
        return int(row.value)

    def set_next_invoice_number(self, number: int) -> None:
        """Overwrite the invoice sequence counter."""
        session = self._get_session()
        row = session.get(InternalSetting, NEXT_INVOICE_NUMBER_KEY)
        if row is None:
            row = InternalSetting(key=NEXT_INVOICE_NUMBER_KEY)
            session.add(row)
        row.value = str(number)
        self._commit()

    # Expense operations
    def add_expense_category(self, category: domain.ExpenseCategory) -> None:
        """Insert an expense category."""
        session = self._get_session()
        session.add(ExpenseCategory(id=category.id, name=category.name))
        self._commit()

    def get_expense_category(self, category_id: str) -> Optional[domain.ExpenseCategory]:
        """Get expense category by ID."""
        session = self._get_session()
        row = session.get(ExpenseCategory, category_id)
        if row is None:
            return None
        return expense_category_to_domain(row)

    def list_expense_categories(self) -> list[domain.ExpenseCategory]:
        """List all expense categories."""
        session = self._get_session()
        rows = session.query(ExpenseCategory).order_by(ExpenseCategory.name).all()
        return [expense_category_to_domain(row) for row in rows]

    def add_expense(self, expense: domain.Expense) -> None:
        """Insert an expense."""
        session = self._get_session()
        session.add(
            Expense(
                id=expense.id,
                date=expense.date,
                description=expense.description,
                category_id=expense.category_id,
                cash_register_id=expense.cash_register_id,
                amount=expense.amount,
                currency=expense.currency.value,
                amount_in_anchor=expense.amount_in_anchor,
            )
        )
        self._commit()

    def list_expenses(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[domain.Expense]:
        """List expenses in chronological order."""
        session = self._get_session()
        query = session.query(Expense)
        if start_date is not None:
            query = query.filter(Expense.date >= _day_start(start_date))
        if end_date is not None:
            query = query.filter(Expense.date < _day_start(end_date + timedelta(days=1)))
        rows = query.order_by(Expense.date, Expense.id).all()
        return [expense_to_domain(row) for row in rows]

    # Settings operations
    def get_setting(self, key: str) -> Optional[Any]:
        """Get a JSON-decoded setting value, or None if unset."""
        session = self._get_session()
        row = session.get(Setting, key)
        if row is None:
            return None
        return json.loads(row.value)

    def set_setting(self, key: str, value: Any) -> None:
        """Store a JSON-encodable setting value."""
        session = self._get_session()
        row = session.get(Setting, key)
        if row is None:
            row = Setting(key=key)
            session.add(row)
        row.value = json.dumps(value)
        self._commit()

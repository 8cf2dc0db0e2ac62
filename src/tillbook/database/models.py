"""SQLAlchemy models for tillbook database."""

import json
from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.types import TypeDecorator

from tillbook.domain.entities import Balances, Price

Base = declarative_base()

class DecimalType(TypeDecorator):
    """Decimal stored as its exact text form."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class BalancesType(TypeDecorator):
    """Per-currency balance map stored as JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Balances):
            value = Balances(value)
        return json.dumps(value.to_json_dict(), sort_keys=True)

    def process_result_value(self, value, dialect):
        if value is None:
            return Balances()
        return Balances.from_json_dict(json.loads(value))


class PriceType(TypeDecorator):
    """Price (amount and currency) stored as JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(value.to_json_dict(), sort_keys=True)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Price.from_json_dict(json.loads(value))


class Category(Base):
    """Product category model with optional parent."""

    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(String, ForeignKey("categories.id"), nullable=True)


class Product(Base):
    """Product model."""

    __tablename__ = "products"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    sku = Column(String, unique=True, nullable=True)
    stock = Column(DecimalType, nullable=False, default=0)
    cost_price = Column(PriceType, nullable=False)
    wholesale_price = Column(PriceType, nullable=False)
    selling_price = Column(PriceType, nullable=False)
    category_id = Column(String, ForeignKey("categories.id"), nullable=True)


class PartyColumns:
    """Columns shared by the customers and suppliers tables."""

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    balances = Column(BalancesType, nullable=False, default=lambda: Balances())


class Customer(PartyColumns, Base):
    """Customer model; positive balance means the customer owes us."""

    __tablename__ = "customers"


class Supplier(PartyColumns, Base):
    """Supplier model; positive balance means we owe the supplier."""

    __tablename__ = "suppliers"


class CashRegister(Base):
    """Cash register model."""

    __tablename__ = "cash_registers"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    balances = Column(BalancesType, nullable=False, default=lambda: Balances())


class CashTransaction(Base):
    """Cash register audit log model."""

    __tablename__ = "cash_transactions"

    id = Column(String, primary_key=True)
    date = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    register_id = Column(String, ForeignKey("cash_registers.id"), nullable=False)
    type = Column(String, nullable=False)
    amount = Column(DecimalType, nullable=False)
    currency = Column(String, nullable=False)
    amount_in_anchor = Column(DecimalType, nullable=False)
    description = Column(String, nullable=False, default="")
    related_id = Column(String, nullable=True, index=True)
    linked_invoice_id = Column(String, nullable=True)


class Invoice(Base):
    """Invoice header model."""

    __tablename__ = "invoices"

    id = Column(String, primary_key=True)
    date = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    total_amount = Column(DecimalType, nullable=False)
    currency = Column(String, nullable=False)
    payment_type = Column(String, nullable=False)
    total_amount_in_anchor = Column(DecimalType, nullable=False)
    customer_id = Column(String, nullable=True)
    supplier_id = Column(String, nullable=True)
    type = Column(String, nullable=False)
    cash_register_id = Column(String, nullable=True)
    vendor_invoice_number = Column(String, nullable=True)

    # Relationships
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )


class InvoiceItem(Base):
    """Invoice line model."""

    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(String, ForeignKey("invoices.id"), nullable=False)
    product_id = Column(String, nullable=False)
    product_name = Column(String, nullable=False)
    quantity = Column(DecimalType, nullable=False)
    unit_price = Column(PriceType, nullable=False)
    total_price = Column(PriceType, nullable=False)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")


class ExpenseCategory(Base):
    """Expense category model."""

    __tablename__ = "expense_categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)


class Expense(Base):
    """Expense model."""

    __tablename__ = "expenses"

    id = Column(String, primary_key=True)
    date = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    description = Column(String, nullable=False)
    category_id = Column(String, ForeignKey("expense_categories.id"), nullable=True)
    cash_register_id = Column(String, ForeignKey("cash_registers.id"), nullable=False)
    amount = Column(DecimalType, nullable=False)
    currency = Column(String, nullable=False)
    amount_in_anchor = Column(DecimalType, nullable=False)


class Setting(Base):
    """User-facing settings stored as JSON values (exchange rates, company info)."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)


class InternalSetting(Base):
    """Internal counters such as the next invoice number."""

    __tablename__ = "settings_internal"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)

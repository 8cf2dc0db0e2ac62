"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the enum and JSON
encodings used at the storage boundary.
"""

from tillbook.domain import entities as domain
from tillbook.database.models import (
    Category as ORMCategory,
    Product as ORMProduct,
    Customer as ORMCustomer,
    Supplier as ORMSupplier,
    CashRegister as ORMCashRegister,
    CashTransaction as ORMCashTransaction,
    Invoice as ORMInvoice,
    InvoiceItem as ORMInvoiceItem,
    ExpenseCategory as ORMExpenseCategory,
    Expense as ORMExpense,
)


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
    )


def product_to_domain(orm_product: ORMProduct) -> domain.Product:
    """Convert SQLAlchemy Product model to domain Product entity."""
    return domain.Product(
        id=orm_product.id,
        name=orm_product.name,
        sku=orm_product.sku,
        stock=orm_product.stock,
        cost_price=orm_product.cost_price,
        wholesale_price=orm_product.wholesale_price,
        selling_price=orm_product.selling_price,
        category_id=orm_product.category_id,
    )


def party_to_domain(orm_party: ORMCustomer | ORMSupplier) -> domain.Party:
    """Convert a customers or suppliers row to a domain Party entity."""
    kind = (
        domain.PartyKind.CUSTOMER
        if isinstance(orm_party, ORMCustomer)
        else domain.PartyKind.SUPPLIER
    )
    return domain.Party(
        id=orm_party.id,
        kind=kind,
        name=orm_party.name,
        phone=orm_party.phone,
        balances=orm_party.balances,
    )


def register_to_domain(orm_register: ORMCashRegister) -> domain.CashRegister:
    """Convert SQLAlchemy CashRegister model to domain CashRegister entity."""
    return domain.CashRegister(
        id=orm_register.id,
        name=orm_register.name,
        balances=orm_register.balances,
    )


def cash_transaction_to_domain(orm_txn: ORMCashTransaction) -> domain.CashTransaction:
    """Convert SQLAlchemy CashTransaction model to domain CashTransaction entity."""
    return domain.CashTransaction(
        id=orm_txn.id,
        date=orm_txn.date,
        register_id=orm_txn.register_id,
        type=domain.CashTransactionType(orm_txn.type),
        amount=orm_txn.amount,
        currency=domain.Currency(orm_txn.currency),
        amount_in_anchor=orm_txn.amount_in_anchor,
        description=orm_txn.description,
        related_id=orm_txn.related_id,
        linked_invoice_id=orm_txn.linked_invoice_id,
    )


def cash_transaction_to_orm(txn: domain.CashTransaction) -> ORMCashTransaction:
    """Build a SQLAlchemy CashTransaction row from a domain entity."""
    return ORMCashTransaction(
        id=txn.id,
        date=txn.date,
        register_id=txn.register_id,
        type=txn.type.value,
        amount=txn.amount,
        currency=txn.currency.value,
        amount_in_anchor=txn.amount_in_anchor,
        description=txn.description,
        related_id=txn.related_id,
        linked_invoice_id=txn.linked_invoice_id,
    )


def invoice_item_to_domain(orm_item: ORMInvoiceItem) -> domain.InvoiceItem:
    """Convert SQLAlchemy InvoiceItem model to domain InvoiceItem entity."""
    return domain.InvoiceItem(
        product_id=orm_item.product_id,
        product_name=orm_item.product_name,
        quantity=orm_item.quantity,
        unit_price=orm_item.unit_price,
        total_price=orm_item.total_price,
    )


def invoice_item_to_orm(item: domain.InvoiceItem) -> ORMInvoiceItem:
    """Build a SQLAlchemy InvoiceItem row from a domain entity."""
    return ORMInvoiceItem(
        product_id=item.product_id,
        product_name=item.product_name,
        quantity=item.quantity,
        unit_price=item.unit_price,
        total_price=item.total_price,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model (with items) to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        date=orm_invoice.date,
        type=domain.InvoiceType(orm_invoice.type),
        payment_type=domain.PaymentType(orm_invoice.payment_type),
        items=tuple(invoice_item_to_domain(item) for item in orm_invoice.items),
        currency=domain.Currency(orm_invoice.currency),
        total_amount=orm_invoice.total_amount,
        total_amount_in_anchor=orm_invoice.total_amount_in_anchor,
        customer_id=orm_invoice.customer_id,
        supplier_id=orm_invoice.supplier_id,
        cash_register_id=orm_invoice.cash_register_id,
        vendor_invoice_number=orm_invoice.vendor_invoice_number,
    )


def expense_category_to_domain(orm_category: ORMExpenseCategory) -> domain.ExpenseCategory:
    """Convert SQLAlchemy ExpenseCategory model to domain ExpenseCategory entity."""
    return domain.ExpenseCategory(id=orm_category.id, name=orm_category.name)


def expense_to_domain(orm_expense: ORMExpense) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain Expense entity."""
    return domain.Expense(
        id=orm_expense.id,
        date=orm_expense.date,
        description=orm_expense.description,
        category_id=orm_expense.category_id,
        cash_register_id=orm_expense.cash_register_id,
        amount=orm_expense.amount,
        currency=domain.Currency(orm_expense.currency),
        amount_in_anchor=orm_expense.amount_in_anchor,
    )

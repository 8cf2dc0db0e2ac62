"""Tests for the pure invoice settlement engine."""

from datetime import datetime
from decimal import Decimal
from itertools import count

import pytest

from tillbook.domain.entities import (
    Balances,
    CashRegister,
    CashTransactionType,
    Currency,
    InvoiceDraft,
    InvoiceItem,
    InvoiceType,
    Party,
    PartyKind,
    PaymentType,
    Price,
    Product,
)
from tillbook.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from tillbook.domain.settlement import (
    LedgerSnapshot,
    format_invoice_id,
    parse_invoice_number,
    reverse_invoice,
    settle_invoice,
)

NOW = datetime(2024, 3, 1, 12, 0)


def _ids():
    numbers = count(1)
    return lambda: f"ct-{next(numbers)}"


def _product(stock="10"):
    price = Price(Decimal("100000"), Currency.SYP)
    return Product(
        id="p-1",
        name="Olive oil 1L",
        sku=None,
        stock=Decimal(stock),
        cost_price=price,
        wholesale_price=price,
        selling_price=price,
    )


def _snapshot(product=None, next_number=1, customer_balances=None, register_balances=None):
    product = product or _product()
    return LedgerSnapshot(
        products={product.id: product},
        customers={
            "c-1": Party("c-1", PartyKind.CUSTOMER, "Ali", balances=Balances(customer_balances)),
            "c-cash": Party("c-cash", PartyKind.CUSTOMER, "Walk-in"),
        },
        suppliers={"s-1": Party("s-1", PartyKind.SUPPLIER, "Acme")},
        registers={"cr-1": CashRegister("cr-1", "Main", balances=Balances(register_balances))},
        next_invoice_number=next_number,
    )


def _draft(
    quantity="1",
    unit="100000",
    invoice_type=InvoiceType.POS,
    payment=PaymentType.CASH,
    currency=Currency.SYP,
    customer_id="c-cash",
    supplier_id=None,
    register_id="cr-1",
):
    quantity, unit = Decimal(quantity), Decimal(unit)
    total = unit * quantity
    item = InvoiceItem(
        product_id="p-1",
        product_name="Olive oil 1L",
        quantity=quantity,
        unit_price=Price(unit, currency),
        total_price=Price(total, currency),
    )
    return InvoiceDraft(
        type=invoice_type,
        payment_type=payment,
        items=(item,),
        currency=currency,
        total_amount=total,
        total_amount_in_anchor=total,
        customer_id=customer_id if invoice_type.is_sale else None,
        supplier_id=supplier_id,
        cash_register_id=register_id,
    )


def test_format_and_parse_invoice_id():
    assert format_invoice_id(1) == "INV-00001"
    assert format_invoice_id(123456) == "INV-123456"
    assert parse_invoice_number("INV-00042") == 42
    with pytest.raises(ValidationError):
        parse_invoice_number("X-1")


def test_cash_sale_moves_stock_register_and_writes_audit_row():
    outcome = settle_invoice(_snapshot(), _draft(), now=NOW, id_factory=_ids())

    assert outcome.invoice.id == "INV-00001"
    assert outcome.invoice.date == NOW
    assert outcome.products["p-1"].stock == Decimal("9")
    assert outcome.registers["cr-1"].balances[Currency.SYP] == Decimal("100000")
    assert outcome.next_invoice_number == 2
    assert outcome.removed_invoice_id is None

    (row,) = outcome.cash_transactions
    assert row.type is CashTransactionType.SALE
    assert row.amount == Decimal("100000")
    assert row.related_id == "INV-00001"
    assert row.id == "ct-1"


def test_credit_sale_raises_receivable_in_invoice_currency_only():
    draft = _draft(payment=PaymentType.CREDIT, customer_id="c-1", currency=Currency.USD, unit="7")
    outcome = settle_invoice(_snapshot(), draft, now=NOW)

    balances = outcome.customers["c-1"].balances
    assert balances[Currency.USD] == Decimal("7")
    assert balances[Currency.SYP] == Decimal("0")
    assert balances[Currency.TRY] == Decimal("0")
    assert outcome.cash_transactions == ()
    assert outcome.registers == {}


def test_cash_purchase_adds_stock_and_pays_from_register():
    draft = _draft(invoice_type=InvoiceType.PURCHASE, quantity="5", unit="60000", supplier_id="s-1")
    outcome = settle_invoice(_snapshot(), draft, now=NOW)

    assert outcome.products["p-1"].stock == Decimal("15")
    assert outcome.registers["cr-1"].balances[Currency.SYP] == Decimal("-300000")
    assert outcome.cash_transactions[0].type is CashTransactionType.PURCHASE


def test_credit_purchase_raises_payable():
    draft = _draft(
        invoice_type=InvoiceType.PURCHASE,
        payment=PaymentType.CREDIT,
        quantity="2",
        unit="60000",
        supplier_id="s-1",
        register_id=None,
    )
    outcome = settle_invoice(_snapshot(), draft, now=NOW)
    assert outcome.suppliers["s-1"].balances[Currency.SYP] == Decimal("120000")


def test_insufficient_stock_names_product_and_available():
    with pytest.raises(InsufficientStockError) as excinfo:
        settle_invoice(_snapshot(product=_product(stock="2")), _draft(quantity="3"), now=NOW)
    assert excinfo.value.product_name == "Olive oil 1L"
    assert excinfo.value.available == Decimal("2")
    assert "Available: 2" in str(excinfo.value)


def test_repeated_lines_are_checked_together():
    draft = _draft(quantity="2")
    doubled = InvoiceDraft(**{**draft.__dict__, "items": draft.items * 2})
    with pytest.raises(InsufficientStockError):
        settle_invoice(_snapshot(product=_product(stock="3")), doubled, now=NOW)


@pytest.mark.parametrize(
    "draft, message",
    [
        (_draft(payment=PaymentType.CREDIT, customer_id="c-cash"), "walk-in"),
        (_draft(register_id=None), "requires a cash register"),
        (_draft(customer_id=None), "requires a customer"),
        (_draft(quantity="0"), "must be positive"),
        (
            _draft(invoice_type=InvoiceType.PURCHASE, payment=PaymentType.CREDIT, register_id=None),
            "requires a supplier",
        ),
    ],
)
def test_invalid_drafts_are_rejected(draft, message):
    with pytest.raises(ValidationError, match=message):
        settle_invoice(_snapshot(), draft, now=NOW)


def test_unknown_register_is_not_found():
    with pytest.raises(NotFoundError, match="cr-9"):
        settle_invoice(_snapshot(), _draft(register_id="cr-9"), now=NOW)


def test_unknown_credit_customer_is_not_found():
    with pytest.raises(NotFoundError, match="c-404"):
        settle_invoice(_snapshot(), _draft(payment=PaymentType.CREDIT, customer_id="c-404"), now=NOW)


def test_edit_reuses_number_and_date_and_replaces_effects():
    first = settle_invoice(_snapshot(), _draft(quantity="1"), now=NOW)
    after_first = _snapshot(
        product=first.products["p-1"],
        next_number=2,
        register_balances=first.registers["cr-1"].balances,
    )

    later = datetime(2024, 3, 2)
    edited = settle_invoice(after_first, _draft(quantity="3"), original=first.invoice, now=later)

    assert edited.invoice.id == "INV-00001"
    assert edited.invoice.date == NOW
    assert edited.removed_invoice_id == "INV-00001"
    assert edited.next_invoice_number is None
    assert edited.products["p-1"].stock == Decimal("7")
    assert edited.registers["cr-1"].balances[Currency.SYP] == Decimal("300000")
    assert len(edited.cash_transactions) == 1


def test_edit_from_cash_to_credit_moves_effect_to_party():
    first = settle_invoice(_snapshot(), _draft(customer_id="c-1"), now=NOW)
    after_first = _snapshot(
        product=first.products["p-1"],
        next_number=2,
        register_balances=first.registers["cr-1"].balances,
    )

    edited = settle_invoice(
        after_first,
        _draft(payment=PaymentType.CREDIT, customer_id="c-1", register_id=None),
        original=first.invoice,
        now=NOW,
    )

    assert edited.registers["cr-1"].balances[Currency.SYP] == Decimal("0")
    assert edited.customers["c-1"].balances[Currency.SYP] == Decimal("100000")
    assert edited.cash_transactions == ()


def test_edit_stock_check_counts_reversed_quantity():
    # 1 left after selling 9; editing the same sale to 10 must be allowed
    first = settle_invoice(_snapshot(), _draft(quantity="9"), now=NOW)
    after_first = _snapshot(
        product=first.products["p-1"],
        next_number=2,
        register_balances=first.registers["cr-1"].balances,
    )
    edited = settle_invoice(after_first, _draft(quantity="10"), original=first.invoice, now=NOW)
    assert edited.products["p-1"].stock == Decimal("0")


def test_reverse_invoice_undoes_credit_sale():
    draft = _draft(payment=PaymentType.CREDIT, customer_id="c-1", quantity="2")
    first = settle_invoice(_snapshot(), draft, now=NOW)
    after_first = _snapshot(
        product=first.products["p-1"],
        next_number=2,
        customer_balances=first.customers["c-1"].balances,
    )

    outcome = reverse_invoice(after_first, first.invoice)

    assert outcome.invoice is None
    assert outcome.removed_invoice_id == "INV-00001"
    assert outcome.products["p-1"].stock == Decimal("10")
    assert outcome.customers["c-1"].balances == Balances()


def test_reverse_skips_missing_entities(log_messages):
    first = settle_invoice(_snapshot(), _draft(), now=NOW)
    empty = LedgerSnapshot(products={}, customers={}, suppliers={}, registers={}, next_invoice_number=2)

    outcome = reverse_invoice(empty, first.invoice)

    assert outcome.products == {}
    assert outcome.registers == {}
    assert any("no longer exists" in m for m in log_messages)


def test_settlement_does_not_mutate_snapshot():
    snapshot = _snapshot()
    settle_invoice(snapshot, _draft(), now=NOW)
    assert snapshot.products["p-1"].stock == Decimal("10")
    assert snapshot.registers["cr-1"].balances == Balances()

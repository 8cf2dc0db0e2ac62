"""Tests for the invoice service against a real database."""

from decimal import Decimal

import pytest

from tillbook.domain.entities import (
    CashTransactionType,
    Currency,
    InvoiceType,
    PartyKind,
    PaymentType,
    Price,
)
from tillbook.domain.errors import ConfigurationError, NotFoundError, StorageError
from tillbook.domain.invoice import STORAGE_FAILURE_MESSAGE, LineRequest


def _sale_rows(temp_db, invoice_id):
    return [
        t
        for t in temp_db.list_cash_transactions(related_id=invoice_id)
        if t.type is CashTransactionType.SALE
    ]


def _state(temp_db):
    """Everything an invoice can touch, for before/after comparisons."""
    return (
        [(p.id, p.stock) for p in temp_db.list_products()],
        [(p.id, p.balances) for p in temp_db.list_parties(PartyKind.CUSTOMER)],
        [(p.id, p.balances) for p in temp_db.list_parties(PartyKind.SUPPLIER)],
        [(r.id, r.balances) for r in temp_db.list_registers()],
        [t.id for t in temp_db.list_cash_transactions()],
        [i.id for i in temp_db.list_invoices()],
        temp_db.get_next_invoice_number(),
    )


def _pos_sale(invoices, quantity="1", unit_price=None, **kwargs):
    lines = [LineRequest("p-1", Decimal(quantity), unit_price)]
    options = {"customer_id": "c-cash", "cash_register_id": "cr-1"}
    options.update(kwargs)
    return invoices.build_draft(InvoiceType.POS, PaymentType.CASH, Currency.SYP, lines, **options)


def _credit_sale(invoices, quantity="1", currency=Currency.SYP, customer_id="c-1", product_id="p-1"):
    return invoices.build_draft(
        InvoiceType.SALE,
        PaymentType.CREDIT,
        currency,
        [LineRequest(product_id, Decimal(quantity))],
        customer_id=customer_id,
    )


class TestBuildDraft:
    def test_sale_uses_selling_price(self, invoices, sample_product):
        draft = _pos_sale(invoices, quantity="2")
        assert draft.items[0].unit_price == Price(Decimal("100000.00"), Currency.SYP)
        assert draft.total_amount == Decimal("200000")
        assert draft.total_amount_in_anchor == Decimal("200000")

    def test_wholesale_price(self, invoices, sample_product):
        draft = invoices.build_draft(
            InvoiceType.SALE,
            PaymentType.CASH,
            Currency.SYP,
            [LineRequest("p-1", Decimal("1"))],
            customer_id="c-cash",
            cash_register_id="cr-1",
            wholesale=True,
        )
        assert draft.total_amount == Decimal("90000")

    def test_purchase_uses_cost_price(self, invoices, sample_product, sample_supplier):
        draft = invoices.build_draft(
            InvoiceType.PURCHASE,
            PaymentType.CREDIT,
            Currency.SYP,
            [LineRequest("p-1", Decimal("3"))],
            supplier_id="s-1",
        )
        assert draft.total_amount == Decimal("180000")

    def test_prices_are_converted_to_invoice_currency(self, invoices, usd_product):
        # 7 USD at 14000 SYP per USD
        draft = invoices.build_draft(
            InvoiceType.POS,
            PaymentType.CASH,
            Currency.SYP,
            [LineRequest("p-2", Decimal("2"))],
            customer_id="c-cash",
            cash_register_id="cr-1",
        )
        assert draft.items[0].unit_price.amount == Decimal("98000")
        assert draft.total_amount == Decimal("196000")

    def test_foreign_currency_total_in_anchor(self, invoices, usd_product):
        draft = invoices.build_draft(
            InvoiceType.POS,
            PaymentType.CASH,
            Currency.USD,
            [LineRequest("p-2", Decimal("3"))],
            customer_id="c-cash",
            cash_register_id="cr-1",
        )
        assert draft.total_amount == Decimal("21")
        assert draft.total_amount_in_anchor == Decimal("294000")

    def test_price_override(self, invoices, sample_product):
        draft = _pos_sale(invoices, quantity="2", unit_price=Price(Decimal("5"), Currency.USD))
        assert draft.items[0].unit_price.amount == Decimal("70000")

    def test_unknown_product(self, invoices):
        with pytest.raises(NotFoundError):
            _pos_sale(invoices)


class TestProcessInvoice:
    def test_cash_sale_then_edit(self, temp_db, invoices, sample_product):
        result = invoices.process_invoice(_pos_sale(invoices))

        assert result.success
        assert result.invoice_id == "INV-00001"
        assert temp_db.get_register("cr-1").balances[Currency.SYP] == Decimal("100000")
        (row,) = _sale_rows(temp_db, "INV-00001")
        assert row.amount == Decimal("100000")
        assert temp_db.get_product("p-1").stock == Decimal("9")

        original = invoices.get_invoice("INV-00001")
        edit = _pos_sale(invoices, unit_price=Price(Decimal("150000"), Currency.SYP))
        result = invoices.process_invoice(edit, is_editing=True, original_invoice=original)

        assert result.success
        assert result.message == "Invoice INV-00001 updated"
        assert temp_db.get_register("cr-1").balances[Currency.SYP] == Decimal("150000")
        assert len(_sale_rows(temp_db, "INV-00001")) == 1
        assert temp_db.get_product("p-1").stock == Decimal("9")
        assert temp_db.get_next_invoice_number() == 2

    def test_edit_keeps_original_date(self, invoices, sample_product):
        invoices.process_invoice(_pos_sale(invoices))
        original = invoices.get_invoice("INV-00001")

        invoices.edit_invoice("INV-00001", _pos_sale(invoices, quantity="2"))

        edited = invoices.get_invoice("INV-00001")
        assert edited.date == original.date
        assert edited.items[0].quantity == Decimal("2")

    def test_edit_changes_stock_to_latest_quantity(self, temp_db, invoices, sample_product):
        invoices.process_invoice(_pos_sale(invoices, quantity="4"))
        invoices.edit_invoice("INV-00001", _pos_sale(invoices, quantity="1"))
        assert temp_db.get_product("p-1").stock == Decimal("9")

    def test_credit_edit_symmetry(self, temp_db, invoices, sample_product, sample_customer):
        invoices.process_invoice(_credit_sale(invoices, quantity="1"))
        a = temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances[Currency.SYP]

        invoices.edit_invoice("INV-00001", _credit_sale(invoices, quantity="3"))
        b = temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances[Currency.SYP]
        assert b - a == Decimal("200000")

        invoices.edit_invoice("INV-00001", _credit_sale(invoices, quantity="1"))
        assert temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances[Currency.SYP] == a

    def test_cash_edit_symmetry(self, temp_db, invoices, sample_product):
        invoices.process_invoice(_pos_sale(invoices, quantity="2"))
        before = temp_db.get_register("cr-1").balances

        invoices.edit_invoice("INV-00001", _pos_sale(invoices, quantity="5"))
        invoices.edit_invoice("INV-00001", _pos_sale(invoices, quantity="2"))

        assert temp_db.get_register("cr-1").balances == before

    def test_edit_cash_to_credit_removes_audit_row(self, temp_db, invoices, sample_product, sample_customer):
        invoices.process_invoice(_pos_sale(invoices, customer_id="c-1"))
        invoices.edit_invoice("INV-00001", _credit_sale(invoices))

        assert temp_db.list_cash_transactions(related_id="INV-00001") == []
        assert temp_db.get_register("cr-1").balances[Currency.SYP] == Decimal("0")
        assert temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances[Currency.SYP] == Decimal("100000")

    def test_insufficient_stock_leaves_state_identical(self, temp_db, invoices, sample_product, sample_customer):
        invoices.process_invoice(_credit_sale(invoices, quantity="2"))
        before = _state(temp_db)

        result = invoices.process_invoice(_pos_sale(invoices, quantity="11"))

        assert not result.success
        assert "Insufficient stock for 'Olive oil 1L'" in result.message
        assert "Available: 8" in result.message
        assert _state(temp_db) == before

    def test_failed_edit_undoes_reversal(self, temp_db, invoices, sample_product):
        invoices.process_invoice(_pos_sale(invoices, quantity="2"))
        before = _state(temp_db)

        result = invoices.edit_invoice("INV-00001", _pos_sale(invoices, quantity="50"))

        assert not result.success
        assert _state(temp_db) == before
        assert invoices.get_invoice("INV-00001").items[0].quantity == Decimal("2")

    def test_sequential_numbering_skips_nothing_on_failure(self, invoices, sample_product):
        ids = [invoices.process_invoice(_pos_sale(invoices)).invoice_id for _ in range(3)]
        failed = invoices.process_invoice(_pos_sale(invoices, quantity="100"))
        ids.append(invoices.process_invoice(_pos_sale(invoices)).invoice_id)

        assert not failed.success
        assert ids == ["INV-00001", "INV-00002", "INV-00003", "INV-00004"]
        assert invoices.get_next_invoice_number() == 5

    def test_stock_conservation(self, temp_db, invoices, sample_product, sample_supplier):
        invoices.process_invoice(_pos_sale(invoices, quantity="3"))
        invoices.process_invoice(
            invoices.build_draft(
                InvoiceType.PURCHASE,
                PaymentType.CREDIT,
                Currency.SYP,
                [LineRequest("p-1", Decimal("7"))],
                supplier_id="s-1",
            )
        )
        invoices.process_invoice(_pos_sale(invoices, quantity="2.5"))

        assert temp_db.get_product("p-1").stock == Decimal("10") - 3 + 7 - Decimal("2.5")

    def test_currency_isolation(self, temp_db, invoices, usd_product, sample_customer):
        invoices.process_invoice(_credit_sale(invoices, quantity="2", currency=Currency.USD, product_id="p-2"))

        balances = temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances
        assert balances[Currency.USD] == Decimal("14")
        assert balances[Currency.SYP] == Decimal("0")
        assert balances[Currency.TRY] == Decimal("0")

    def test_credit_to_walk_in_rejected(self, temp_db, invoices, sample_product):
        before = _state(temp_db)
        result = invoices.process_invoice(_credit_sale(invoices, customer_id="c-cash"))
        assert not result.success
        assert "walk-in" in result.message
        assert _state(temp_db) == before

    def test_unknown_register_rejected(self, temp_db, invoices, sample_product):
        result = invoices.process_invoice(_pos_sale(invoices, cash_register_id="cr-404"))
        assert not result.success
        assert result.message == "Cash register cr-404 not found"
        assert temp_db.get_next_invoice_number() == 1

    def test_missing_exchange_rates_abort_before_mutation(self, temp_db, invoices, sample_product):
        temp_db.set_setting("exchangeRates", None)

        with pytest.raises(ConfigurationError):
            _pos_sale(invoices)
        assert temp_db.get_product("p-1").stock == Decimal("10")

    def test_editing_requires_original(self, invoices, sample_product):
        result = invoices.process_invoice(_pos_sale(invoices), is_editing=True)
        assert not result.success

    def test_edit_unknown_invoice(self, invoices, sample_product):
        result = invoices.edit_invoice("INV-00099", _pos_sale(invoices))
        assert not result.success
        assert "not found" in result.message

    def test_storage_failure_returns_generic_message(self, temp_db, invoices, sample_product, monkeypatch):
        def fail(invoice):
            raise StorageError("disk I/O error")

        monkeypatch.setattr(temp_db, "save_invoice", fail)
        before = _state(temp_db)

        result = invoices.process_invoice(_pos_sale(invoices))

        assert not result.success
        assert result.message == STORAGE_FAILURE_MESSAGE
        assert _state(temp_db) == before


class TestDeleteInvoice:
    def test_delete_cash_sale_restores_everything(self, temp_db, invoices, sample_product):
        before = _state(temp_db)
        invoices.process_invoice(_pos_sale(invoices, quantity="3"))

        invoices.delete_invoice("INV-00001")

        after = _state(temp_db)
        # The counter is not rolled back by deletion
        assert after[:-1] == before[:-1]
        assert after[-1] == 2

    def test_delete_credit_purchase(self, temp_db, invoices, sample_product, sample_supplier):
        invoices.process_invoice(
            invoices.build_draft(
                InvoiceType.PURCHASE,
                PaymentType.CREDIT,
                Currency.SYP,
                [LineRequest("p-1", Decimal("4"))],
                supplier_id="s-1",
            )
        )
        assert temp_db.get_party(PartyKind.SUPPLIER, "s-1").balances[Currency.SYP] == Decimal("240000")

        invoices.delete_invoice("INV-00001")

        assert temp_db.get_party(PartyKind.SUPPLIER, "s-1").balances[Currency.SYP] == Decimal("0")
        assert temp_db.get_product("p-1").stock == Decimal("10")

    def test_delete_unknown_invoice(self, invoices):
        with pytest.raises(NotFoundError):
            invoices.delete_invoice("INV-00404")


class TestExactAmounts:
    def test_tiny_fractional_sale_moves_stock(self, invoices, sample_product, reopen):
        result = invoices.process_invoice(_pos_sale(invoices, quantity="0.0004"))
        assert result.success

        db = reopen()
        assert db.get_product("p-1").stock == Decimal("10") - Decimal("0.0004")
        assert db.get_invoice(result.invoice_id).items[0].quantity == Decimal("0.0004")

    def test_large_total_reverses_to_zero(self, temp_db, invoices, sample_product, reopen):
        huge = Price(Decimal("12345678901234.57"), Currency.SYP)
        result = invoices.process_invoice(_pos_sale(invoices, unit_price=huge))
        assert temp_db.get_invoice(result.invoice_id).total_amount == huge.amount

        invoices.delete_invoice(result.invoice_id)

        db = reopen()
        assert db.get_register("cr-1").balances[Currency.SYP] == Decimal("0")
        assert db.list_cash_transactions() == []


class TestCheckout:
    def test_credit_sale_with_partial_payment(self, temp_db, invoices, sample_product, sample_customer):
        draft = invoices.build_draft(
            InvoiceType.POS,
            PaymentType.CREDIT,
            Currency.SYP,
            [LineRequest("p-1", Decimal("2"))],
            customer_id="c-1",
            cash_register_id="cr-1",
        )
        result = invoices.checkout(draft, partial_payment=Decimal("50000"))

        assert result.success
        assert temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances[Currency.SYP] == Decimal("150000")
        assert temp_db.get_register("cr-1").balances[Currency.SYP] == Decimal("50000")
        (payment,) = temp_db.list_cash_transactions(related_id="c-1")
        assert payment.type is CashTransactionType.PAYMENT_RECEIVED
        assert payment.linked_invoice_id == result.invoice_id

    def test_cash_checkout_ignores_partial_payment(self, temp_db, invoices, sample_product):
        result = invoices.checkout(_pos_sale(invoices), partial_payment=Decimal("10"))
        assert result.success
        assert temp_db.get_register("cr-1").balances[Currency.SYP] == Decimal("100000")

    def test_partial_payment_requires_register(self, invoices, sample_product, sample_customer):
        result = invoices.checkout(_credit_sale(invoices), partial_payment=Decimal("10"))
        assert not result.success
        assert "cash register" in result.message

    def test_partial_payment_cannot_exceed_total(self, temp_db, invoices, sample_product, sample_customer):
        draft = invoices.build_draft(
            InvoiceType.SALE,
            PaymentType.CREDIT,
            Currency.SYP,
            [LineRequest("p-1", Decimal("1"))],
            customer_id="c-1",
            cash_register_id="cr-1",
        )
        before = _state(temp_db)

        result = invoices.checkout(draft, partial_payment=Decimal("100000.01"))

        assert not result.success
        assert "exceeds the invoice total" in result.message
        assert _state(temp_db) == before

    def test_partial_payment_may_settle_in_full(self, temp_db, invoices, sample_product, sample_customer):
        draft = invoices.build_draft(
            InvoiceType.SALE,
            PaymentType.CREDIT,
            Currency.SYP,
            [LineRequest("p-1", Decimal("1"))],
            customer_id="c-1",
            cash_register_id="cr-1",
        )

        result = invoices.checkout(draft, partial_payment=Decimal("100000"))

        assert result.success
        assert temp_db.get_party(PartyKind.CUSTOMER, "c-1").balances[Currency.SYP] == Decimal("0")

    def test_failed_payment_rolls_back_invoice(self, temp_db, invoices, sample_product, sample_customer):
        draft = invoices.build_draft(
            InvoiceType.SALE,
            PaymentType.CREDIT,
            Currency.SYP,
            [LineRequest("p-1", Decimal("1"))],
            customer_id="c-1",
            cash_register_id="cr-404",
        )
        before = _state(temp_db)

        result = invoices.checkout(draft, partial_payment=Decimal("1000"))

        assert not result.success
        assert _state(temp_db) == before


def test_wait_for_invoice(invoices, sample_product):
    invoices.process_invoice(_pos_sale(invoices))
    assert invoices.wait_for_invoice("INV-00001").id == "INV-00001"
    assert invoices.wait_for_invoice("INV-00404", attempts=2, delay=0) is None


def test_list_invoices_by_type(invoices, sample_product, sample_supplier):
    invoices.process_invoice(_pos_sale(invoices))
    invoices.process_invoice(
        invoices.build_draft(
            InvoiceType.PURCHASE,
            PaymentType.CREDIT,
            Currency.SYP,
            [LineRequest("p-1", Decimal("1"))],
            supplier_id="s-1",
        )
    )

    assert [i.id for i in invoices.list_invoices()] == ["INV-00001", "INV-00002"]
    assert [i.id for i in invoices.list_invoices(invoice_type=InvoiceType.PURCHASE)] == ["INV-00002"]

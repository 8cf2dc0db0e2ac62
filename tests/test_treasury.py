"""Tests for cash registers, movements, payments and expenses."""

from decimal import Decimal

import pytest

from tillbook.domain.entities import CashTransactionType, Currency
from tillbook.domain.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def second_register(treasury):
    return treasury.add_register("Back office", register_id="cr-2")


class TestRegisters:
    def test_default_register_seeded(self, treasury):
        register = treasury.get_register("cr-1")
        assert register.name == "Main register"
        assert all(v == 0 for v in register.balances.values())

    def test_add_register_with_opening_balances(self, temp_db, treasury):
        register = treasury.add_register(
            "Shop 2", opening_balances={Currency.USD: Decimal("200"), Currency.SYP: Decimal("0")}
        )

        stored = treasury.require_register(register.id)
        assert stored.balances[Currency.USD] == Decimal("200")
        (row,) = treasury.list_cash_transactions(register.id)
        assert row.type is CashTransactionType.OPENING_BALANCE
        assert row.amount_in_anchor == Decimal("2800000")

    def test_duplicate_register_id(self, treasury):
        with pytest.raises(ConflictError):
            treasury.add_register("Again", register_id="cr-1")

    def test_empty_name(self, treasury):
        with pytest.raises(ValidationError):
            treasury.add_register("  ")

    def test_require_unknown_register(self, treasury):
        with pytest.raises(NotFoundError, match="cr-9"):
            treasury.require_register("cr-9")


class TestTransfer:
    def test_transfer_moves_balance_and_writes_paired_rows(self, treasury, second_register):
        treasury.record_movement("cr-1", "deposit", Decimal("500"), Currency.USD, "Float")

        out_row, in_row = treasury.transfer_funds("cr-1", "cr-2", Decimal("120"), Currency.USD)

        assert treasury.get_register("cr-1").balances[Currency.USD] == Decimal("380")
        assert treasury.get_register("cr-2").balances[Currency.USD] == Decimal("120")
        assert out_row.type is CashTransactionType.TRANSFER_OUT
        assert in_row.type is CashTransactionType.TRANSFER_IN
        assert out_row.description == "Transfer to Back office"
        assert in_row.description == "Transfer from Main register"
        assert [t.type for t in treasury.list_cash_transactions("cr-2")] == [CashTransactionType.TRANSFER_IN]

    def test_transfer_to_same_register(self, treasury):
        with pytest.raises(ValidationError):
            treasury.transfer_funds("cr-1", "cr-1", Decimal("1"), Currency.SYP)

    def test_transfer_to_unknown_register_changes_nothing(self, treasury):
        with pytest.raises(NotFoundError):
            treasury.transfer_funds("cr-1", "cr-404", Decimal("10"), Currency.SYP)
        assert treasury.get_register("cr-1").balances[Currency.SYP] == Decimal("0")
        assert treasury.list_cash_transactions() == []

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, treasury, second_register, amount):
        with pytest.raises(ValidationError):
            treasury.transfer_funds("cr-1", "cr-2", Decimal(amount), Currency.SYP)


class TestMovements:
    def test_deposit_and_withdrawal(self, treasury):
        treasury.record_movement("cr-1", "deposit", Decimal("1000"), Currency.TRY, "Opening float")
        row = treasury.record_movement("cr-1", "withdrawal", Decimal("250"), Currency.TRY, "Owner draw")

        assert treasury.get_register("cr-1").balances[Currency.TRY] == Decimal("750")
        assert row.type is CashTransactionType.WITHDRAWAL
        assert row.amount_in_anchor == Decimal("112500")

    def test_withdrawal_may_go_negative(self, treasury):
        treasury.record_movement("cr-1", "withdrawal", Decimal("5"), Currency.USD, "Petty cash")
        assert treasury.get_register("cr-1").balances[Currency.USD] == Decimal("-5")

    def test_unknown_kind(self, treasury):
        with pytest.raises(ValidationError):
            treasury.record_movement("cr-1", "refund", Decimal("5"), Currency.USD, "x")

    def test_description_required(self, treasury):
        with pytest.raises(ValidationError):
            treasury.record_movement("cr-1", "deposit", Decimal("5"), Currency.USD, " ")


class TestPayments:
    def test_payment_received_reduces_receivable(self, temp_db, treasury, ledger):
        ledger.add_customer("Ali", opening_balances={Currency.SYP: Decimal("300000")}, customer_id="c-1")

        row = treasury.record_payment("received", "c-1", "cr-1", Decimal("100000"), Currency.SYP)

        assert ledger.get_customer("c-1").balances[Currency.SYP] == Decimal("200000")
        assert treasury.get_register("cr-1").balances[Currency.SYP] == Decimal("100000")
        assert row.type is CashTransactionType.PAYMENT_RECEIVED
        assert row.related_id == "c-1"
        assert row.description == "Payment from customer: Ali"

    def test_payment_made_reduces_payable(self, treasury, ledger, sample_supplier):
        treasury.record_payment("made", "s-1", "cr-1", Decimal("40"), Currency.USD)

        assert ledger.get_supplier("s-1").balances[Currency.USD] == Decimal("-40")
        assert treasury.get_register("cr-1").balances[Currency.USD] == Decimal("-40")

    def test_payment_currency_isolation(self, treasury, ledger, sample_customer):
        treasury.record_payment("received", "c-1", "cr-1", Decimal("10"), Currency.USD)

        balances = ledger.get_customer("c-1").balances
        assert balances[Currency.SYP] == Decimal("0")
        assert balances[Currency.TRY] == Decimal("0")
        assert balances[Currency.USD] == Decimal("-10")

    def test_unknown_party_changes_nothing(self, treasury):
        with pytest.raises(NotFoundError, match="Supplier s-404"):
            treasury.record_payment("made", "s-404", "cr-1", Decimal("1"), Currency.SYP)
        assert treasury.list_cash_transactions() == []

    def test_unknown_linked_invoice(self, treasury, sample_customer):
        with pytest.raises(NotFoundError, match="INV-00404"):
            treasury.record_payment(
                "received", "c-1", "cr-1", Decimal("1"), Currency.SYP, linked_invoice_id="INV-00404"
            )
        assert treasury.get_register("cr-1").balances[Currency.SYP] == Decimal("0")

    def test_unknown_direction(self, treasury, sample_customer):
        with pytest.raises(ValidationError):
            treasury.record_payment("refunded", "c-1", "cr-1", Decimal("1"), Currency.SYP)


class TestExpenses:
    def test_record_expense(self, temp_db, treasury):
        category = treasury.add_expense_category("Utilities")

        expense, row = treasury.record_expense("Electricity", category.id, "cr-1", Decimal("20"), Currency.USD)

        assert treasury.get_register("cr-1").balances[Currency.USD] == Decimal("-20")
        assert row.type is CashTransactionType.EXPENSE
        assert row.related_id == expense.id
        assert expense.amount_in_anchor == Decimal("280000")
        assert [e.id for e in treasury.list_expenses()] == [expense.id]

    def test_unknown_category(self, treasury):
        with pytest.raises(NotFoundError):
            treasury.record_expense("Rent", "ec-404", "cr-1", Decimal("1"), Currency.SYP)
        assert treasury.list_expenses() == []

    def test_expense_without_category(self, treasury):
        expense, _ = treasury.record_expense("Tea", None, "cr-1", Decimal("5000"), Currency.SYP)
        assert expense.category_id is None

    def test_expense_categories_sorted(self, treasury):
        treasury.add_expense_category("Wages")
        treasury.add_expense_category("Rent")
        assert [c.name for c in treasury.list_expense_categories()] == ["Rent", "Wages"]

"""Tests for customers, suppliers and business settings."""

from decimal import Decimal

import pytest

from tillbook.domain.entities import CASH_CUSTOMER_ID, Currency, PartyKind
from tillbook.domain.errors import ConfigurationError, ConflictError, NotFoundError, ValidationError


class TestLedger:
    def test_walk_in_customer_seeded(self, ledger):
        assert ledger.get_customer(CASH_CUSTOMER_ID).name == "Walk-in customer"

    def test_add_customer_with_opening_balance(self, ledger):
        customer = ledger.add_customer("Rami", opening_balances={Currency.USD: Decimal("15")})

        assert customer.id.startswith("c-")
        assert ledger.get_customer(customer.id).balances[Currency.USD] == Decimal("15")

    def test_customers_and_suppliers_are_separate(self, ledger, sample_customer, sample_supplier):
        assert ledger.get_supplier("c-1") is None
        assert ledger.get_customer("s-1") is None
        assert [s.id for s in ledger.list_suppliers()] == ["s-1"]

    def test_duplicate_id(self, ledger, sample_customer):
        with pytest.raises(ConflictError):
            ledger.add_customer("Other", customer_id="c-1")

    def test_empty_name(self, ledger):
        with pytest.raises(ValidationError):
            ledger.add_supplier(" ")

    def test_update_party(self, ledger, sample_customer):
        updated = ledger.update_party(PartyKind.CUSTOMER, "c-1", phone="0999111222")

        assert updated.name == "Ali Hassan"
        assert ledger.get_customer("c-1").phone == "0999111222"

    def test_update_keeps_balances(self, ledger):
        ledger.add_supplier("Acme", opening_balances={Currency.TRY: Decimal("900")}, supplier_id="s-9")
        ledger.update_party(PartyKind.SUPPLIER, "s-9", name="Acme Ltd")
        assert ledger.get_supplier("s-9").balances[Currency.TRY] == Decimal("900")

    def test_delete_party(self, ledger, sample_supplier):
        ledger.delete_party(PartyKind.SUPPLIER, "s-1")
        assert ledger.get_supplier("s-1") is None
        with pytest.raises(NotFoundError):
            ledger.delete_party(PartyKind.SUPPLIER, "s-1")

    def test_walk_in_customer_cannot_be_deleted(self, ledger):
        with pytest.raises(ValidationError):
            ledger.delete_party(PartyKind.CUSTOMER, CASH_CUSTOMER_ID)


class TestSettings:
    def test_default_rates(self, settings):
        rates = settings.get_exchange_rates()
        assert rates.usd == Decimal("14000")
        assert rates.try_ == Decimal("450")

    def test_set_rates(self, settings):
        settings.set_exchange_rates(Decimal("15000"), Decimal("460.5"))
        assert settings.converter().rate_for(Currency.TRY) == Decimal("460.5")

    def test_reject_non_positive_rate(self, settings):
        with pytest.raises(ConfigurationError):
            settings.set_exchange_rates(Decimal("0"), Decimal("450"))
        assert settings.get_exchange_rates().usd == Decimal("14000")

    def test_corrupt_rates(self, temp_db, settings):
        temp_db.set_setting("exchangeRates", {"USD": "abc"})
        with pytest.raises(ConfigurationError):
            settings.get_exchange_rates()

    def test_company_info(self, settings):
        assert settings.get_company_info() == {"name": "", "address": "", "phone": ""}

        settings.set_company_info(name="Al Noor Market", phone="011 222 3333")
        settings.set_company_info(address="Damascus")

        assert settings.get_company_info() == {
            "name": "Al Noor Market",
            "address": "Damascus",
            "phone": "011 222 3333",
        }

"""Shared pytest fixtures for tillbook tests."""

import os
import tempfile
from decimal import Decimal

import pytest
from loguru import logger

from tillbook.database.factories import create_sqlite_database
from tillbook.domain.entities import Currency, Price
from tillbook.domain.inventory import InventoryService
from tillbook.domain.invoice import InvoiceService
from tillbook.domain.ledger import LedgerService
from tillbook.domain.reports import ReportService
from tillbook.domain.settings import SettingsService
from tillbook.domain.treasury import TreasuryService


def _syp(amount) -> Price:
    return Price(Decimal(str(amount)), Currency.SYP)


def _usd(amount) -> Price:
    return Price(Decimal(str(amount)), Currency.USD)


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI runs point loguru at a captured stream; drop sinks after each test."""
    yield
    logger.remove()


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def reopen(temp_db):
    """Open a fresh connection to the temp database (sees CLI writes)."""
    opened = []

    def _reopen():
        db = create_sqlite_database(database_path=temp_db.database_path)
        opened.append(db)
        return db

    yield _reopen
    for db in opened:
        db.disconnect()


@pytest.fixture
def inventory(temp_db):
    return InventoryService(temp_db)


@pytest.fixture
def ledger(temp_db):
    return LedgerService(temp_db)


@pytest.fixture
def treasury(temp_db):
    return TreasuryService(temp_db)


@pytest.fixture
def invoices(temp_db):
    return InvoiceService(temp_db)


@pytest.fixture
def reports(temp_db):
    return ReportService(temp_db)


@pytest.fixture
def settings(temp_db):
    return SettingsService(temp_db)


@pytest.fixture
def sample_product(inventory):
    """Olive oil: cost 60000, selling 100000, wholesale 90000 SYP, 10 in stock."""
    return inventory.add_product(
        name="Olive oil 1L",
        cost_price=_syp(60000),
        selling_price=_syp(100000),
        wholesale_price=_syp(90000),
        sku="6901234",
        stock=Decimal("10"),
        product_id="p-1",
    )


@pytest.fixture
def usd_product(inventory):
    """Phone charger priced in USD, 5 in stock."""
    return inventory.add_product(
        name="Phone charger",
        cost_price=_usd(4),
        selling_price=_usd(7),
        sku="CHG-1",
        stock=Decimal("5"),
        product_id="p-2",
    )


@pytest.fixture
def sample_customer(ledger):
    return ledger.add_customer("Ali Hassan", phone="0944000000", customer_id="c-1")


@pytest.fixture
def sample_supplier(ledger):
    return ledger.add_supplier("Acme Trading", phone="0211234567", supplier_id="s-1")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()

"""Treasury domain service: cash registers, movements, payments and expenses.

Every mutating operation reads the current balances, computes the new ones
in memory and writes them together with the audit rows in one unit of work.
"""

from collections.abc import Mapping
from dataclasses import replace
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Literal, Optional

from loguru import logger

from tillbook.database.base import Database
from tillbook.domain.entities import (
    Balances,
    CashRegister,
    CashTransaction,
    CashTransactionType,
    Currency,
    Expense,
    ExpenseCategory,
    PartyKind,
    Price,
    ZERO,
    new_id,
)
from tillbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    category_not_found,
    customer_not_found,
    invoice_not_found,
    register_not_found,
    supplier_not_found,
)
from tillbook.domain.settings import SettingsService

PaymentDirection = Literal["received", "made"]
MovementKind = Literal["deposit", "withdrawal"]


def _require_positive(amount: Decimal) -> Decimal:
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationError(f"Amount must be positive, got {amount}")
    return amount


class TreasuryService:
    """Service for cash registers and the cash-transaction log."""

    def __init__(self, db: Database):
        """Initialize treasury service.

        Args:
            db: Database instance
        """
        self.db = db
        self.settings = SettingsService(db)

    # Registers
    def add_register(
        self,
        name: str,
        opening_balances: Optional[Mapping[Currency, Decimal]] = None,
        register_id: Optional[str] = None,
    ) -> CashRegister:
        """Create a cash register, logging an OpeningBalance row per non-zero currency."""
        if not name.strip():
            raise ValidationError("Register name cannot be empty")
        balances = Balances(opening_balances)
        register = CashRegister(id=register_id or new_id("cr"), name=name.strip(), balances=balances)
        converter = self.settings.converter() if any(balances.values()) else None
        now = datetime.now(UTC)

        with self.db.transaction():
            if self.db.get_register(register.id) is not None:
                raise ConflictError(f"Cash register {register.id} already exists")
            self.db.add_register(register)
            for currency, amount in balances.items():
                if amount == ZERO:
                    continue
                self.db.add_cash_transaction(
                    CashTransaction(
                        id=new_id("ct"),
                        date=now,
                        register_id=register.id,
                        type=CashTransactionType.OPENING_BALANCE,
                        amount=amount,
                        currency=currency,
                        amount_in_anchor=converter.to_anchor(Price(amount, currency)),
                        description=f"Opening balance of {register.name}",
                    )
                )
        logger.info(f"Added cash register {register.id} ({register.name})")
        return register

    def get_register(self, register_id: str) -> Optional[CashRegister]:
        """Get cash register by ID."""
        return self.db.get_register(register_id)

    def require_register(self, register_id: str) -> CashRegister:
        """Get cash register by ID or raise NotFoundError."""
        register = self.db.get_register(register_id)
        if register is None:
            raise NotFoundError(register_not_found(register_id))
        return register

    def list_registers(self) -> list[CashRegister]:
        """List all cash registers."""
        return self.db.list_registers()

    def list_cash_transactions(self, register_id: Optional[str] = None) -> list[CashTransaction]:
        """List the cash log, optionally for one register."""
        return self.db.list_cash_transactions(register_id=register_id)

    # Movements
    def transfer_funds(
        self, from_id: str, to_id: str, amount: Decimal, currency: Currency
    ) -> tuple[CashTransaction, CashTransaction]:
        """Move money between two registers.

        Returns:
            The (TransferOut, TransferIn) audit rows

        Raises:
            ValidationError: If amount is not positive or both registers are the same
            NotFoundError: If either register doesn't exist
            ConfigurationError: If exchange rates are unusable
        """
        amount = _require_positive(amount)
        currency = Currency(currency)
        if from_id == to_id:
            raise ValidationError("Cannot transfer to the same register")
        amount_in_anchor = self.settings.converter().to_anchor(Price(amount, currency))
        now = datetime.now(UTC)

        with self.db.transaction():
            source = self.require_register(from_id)
            target = self.require_register(to_id)
            self.db.update_register(replace(source, balances=source.balances.adjust(currency, -amount)))
            self.db.update_register(replace(target, balances=target.balances.adjust(currency, amount)))

            out_row = CashTransaction(
                id=new_id("ct"),
                date=now,
                register_id=from_id,
                type=CashTransactionType.TRANSFER_OUT,
                amount=amount,
                currency=currency,
                amount_in_anchor=amount_in_anchor,
                description=f"Transfer to {target.name}",
            )
            in_row = replace(
                out_row,
                id=new_id("ct"),
                register_id=to_id,
                type=CashTransactionType.TRANSFER_IN,
                description=f"Transfer from {source.name}",
            )
            self.db.add_cash_transaction(out_row)
            self.db.add_cash_transaction(in_row)

        logger.info(f"Transferred {amount} {currency.value} from {from_id} to {to_id}")
        return out_row, in_row

    def record_movement(
        self,
        register_id: str,
        kind: MovementKind,
        amount: Decimal,
        currency: Currency,
        description: str,
    ) -> CashTransaction:
        """Deposit into or withdraw from one register.

        Raises:
            ValidationError: On a non-positive amount, unknown kind or empty description
            NotFoundError: If the register doesn't exist
        """
        amount = _require_positive(amount)
        currency = Currency(currency)
        if kind not in ("deposit", "withdrawal"):
            raise ValidationError(f"Unknown movement type '{kind}'")
        if not description.strip():
            raise ValidationError("Description cannot be empty")
        amount_in_anchor = self.settings.converter().to_anchor(Price(amount, currency))
        delta = amount if kind == "deposit" else -amount

        with self.db.transaction():
            register = self.require_register(register_id)
            self.db.update_register(replace(register, balances=register.balances.adjust(currency, delta)))
            row = CashTransaction(
                id=new_id("ct"),
                date=datetime.now(UTC),
                register_id=register_id,
                type=CashTransactionType.DEPOSIT if kind == "deposit" else CashTransactionType.WITHDRAWAL,
                amount=amount,
                currency=currency,
                amount_in_anchor=amount_in_anchor,
                description=description.strip(),
            )
            self.db.add_cash_transaction(row)

        logger.info(f"Recorded {kind} of {amount} {currency.value} on {register_id}")
        return row

    def record_payment(
        self,
        direction: PaymentDirection,
        party_id: str,
        register_id: str,
        amount: Decimal,
        currency: Currency,
        linked_invoice_id: Optional[str] = None,
    ) -> CashTransaction:
        """Settle part of a party balance through a register.

        ``received`` takes money from a customer; ``made`` pays a supplier.
        The party balance drops by ``amount`` in the payment currency.

        Raises:
            ValidationError: On a non-positive amount or unknown direction
            NotFoundError: If party, register or linked invoice doesn't exist
        """
        amount = _require_positive(amount)
        currency = Currency(currency)
        if direction not in ("received", "made"):
            raise ValidationError(f"Unknown payment direction '{direction}'")
        received = direction == "received"
        kind = PartyKind.CUSTOMER if received else PartyKind.SUPPLIER
        amount_in_anchor = self.settings.converter().to_anchor(Price(amount, currency))

        with self.db.transaction():
            party = self.db.get_party(kind, party_id)
            if party is None:
                message = customer_not_found if received else supplier_not_found
                raise NotFoundError(message(party_id))
            register = self.require_register(register_id)
            if linked_invoice_id and self.db.get_invoice(linked_invoice_id) is None:
                raise NotFoundError(invoice_not_found(linked_invoice_id))

            self.db.update_party(replace(party, balances=party.balances.adjust(currency, -amount)))
            self.db.update_register(
                replace(
                    register,
                    balances=register.balances.adjust(currency, amount if received else -amount),
                )
            )
            row = CashTransaction(
                id=new_id("ct"),
                date=datetime.now(UTC),
                register_id=register_id,
                type=CashTransactionType.PAYMENT_RECEIVED if received else CashTransactionType.PAYMENT_MADE,
                amount=amount,
                currency=currency,
                amount_in_anchor=amount_in_anchor,
                description=(
                    f"Payment from customer: {party.name}"
                    if received
                    else f"Payment to supplier: {party.name}"
                ),
                related_id=party_id,
                linked_invoice_id=linked_invoice_id or None,
            )
            self.db.add_cash_transaction(row)

        logger.info(f"Payment {direction}: {amount} {currency.value} {kind.value} {party_id} via {register_id}")
        return row

    # Expenses
    def add_expense_category(self, name: str, category_id: Optional[str] = None) -> ExpenseCategory:
        """Create an expense category."""
        if not name.strip():
            raise ValidationError("Expense category name cannot be empty")
        category = ExpenseCategory(id=category_id or new_id("ec"), name=name.strip())
        self.db.add_expense_category(category)
        return category

    def list_expense_categories(self) -> list[ExpenseCategory]:
        """List all expense categories."""
        return self.db.list_expense_categories()

    def record_expense(
        self,
        description: str,
        category_id: Optional[str],
        register_id: str,
        amount: Decimal,
        currency: Currency,
    ) -> tuple[Expense, CashTransaction]:
        """Pay an expense out of a register.

        Returns:
            The stored expense and its Expense audit row

        Raises:
            ValidationError: On a non-positive amount or empty description
            NotFoundError: If the register or category doesn't exist
        """
        amount = _require_positive(amount)
        currency = Currency(currency)
        if not description.strip():
            raise ValidationError("Description cannot be empty")
        amount_in_anchor = self.settings.converter().to_anchor(Price(amount, currency))
        now = datetime.now(UTC)

        with self.db.transaction():
            register = self.require_register(register_id)
            if category_id is not None and self.db.get_expense_category(category_id) is None:
                raise NotFoundError(category_not_found(category_id))

            expense = Expense(
                id=new_id("exp"),
                date=now,
                description=description.strip(),
                category_id=category_id,
                cash_register_id=register_id,
                amount=amount,
                currency=currency,
                amount_in_anchor=amount_in_anchor,
            )
            self.db.add_expense(expense)
            self.db.update_register(replace(register, balances=register.balances.adjust(currency, -amount)))
            row = CashTransaction(
                id=new_id("ct"),
                date=now,
                register_id=register_id,
                type=CashTransactionType.EXPENSE,
                amount=amount,
                currency=currency,
                amount_in_anchor=amount_in_anchor,
                description=expense.description,
                related_id=expense.id,
            )
            self.db.add_cash_transaction(row)

        logger.info(f"Recorded expense {expense.id}: {amount} {currency.value} from {register_id}")
        return expense, row

    def list_expenses(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[Expense]:
        """List expenses, optionally within an inclusive date range."""
        return self.db.list_expenses(start_date=start_date, end_date=end_date)

"""Ledger domain service (customers and suppliers)."""

from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from loguru import logger

from tillbook.database.base import Database
from tillbook.domain.entities import CASH_CUSTOMER_ID, Balances, Currency, Party, PartyKind, new_id
from tillbook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    customer_not_found,
    supplier_not_found,
)

_ID_PREFIX = {PartyKind.CUSTOMER: "c", PartyKind.SUPPLIER: "s"}


class LedgerService:
    """Service for managing customers, suppliers and their balances."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_customer(
        self,
        name: str,
        phone: Optional[str] = None,
        opening_balances: Optional[Mapping[Currency, Decimal]] = None,
        customer_id: Optional[str] = None,
    ) -> Party:
        """Create a customer. A positive opening balance is owed to us."""
        return self._add_party(PartyKind.CUSTOMER, name, phone, opening_balances, customer_id)

    def add_supplier(
        self,
        name: str,
        phone: Optional[str] = None,
        opening_balances: Optional[Mapping[Currency, Decimal]] = None,
        supplier_id: Optional[str] = None,
    ) -> Party:
        """Create a supplier. A positive opening balance is owed by us."""
        return self._add_party(PartyKind.SUPPLIER, name, phone, opening_balances, supplier_id)

    def _add_party(
        self,
        kind: PartyKind,
        name: str,
        phone: Optional[str],
        opening_balances: Optional[Mapping[Currency, Decimal]],
        party_id: Optional[str],
    ) -> Party:
        if not name.strip():
            raise ValidationError(f"{kind.value.capitalize()} name cannot be empty")
        if party_id is not None and self.db.get_party(kind, party_id) is not None:
            raise ConflictError(f"{kind.value.capitalize()} {party_id} already exists")

        party = Party(
            id=party_id or new_id(_ID_PREFIX[kind]),
            kind=kind,
            name=name.strip(),
            phone=phone or None,
            balances=Balances(opening_balances),
        )
        self.db.add_party(party)
        logger.info(f"Added {kind.value} {party.id} ({party.name})")
        return party

    def update_party(
        self,
        kind: PartyKind,
        party_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Party:
        """Update a party's name and/or phone. Balances are not editable here.

        Raises:
            NotFoundError: If the party doesn't exist
            ValidationError: If the new name is empty
        """
        party = self.require_party(kind, party_id)
        updates = {}
        if name is not None:
            if not name.strip():
                raise ValidationError(f"{kind.value.capitalize()} name cannot be empty")
            updates["name"] = name.strip()
        if phone is not None:
            updates["phone"] = phone or None
        updated = replace(party, **updates)
        self.db.update_party(updated)
        return updated

    def get_customer(self, customer_id: str) -> Optional[Party]:
        """Get customer by ID."""
        return self.db.get_party(PartyKind.CUSTOMER, customer_id)

    def get_supplier(self, supplier_id: str) -> Optional[Party]:
        """Get supplier by ID."""
        return self.db.get_party(PartyKind.SUPPLIER, supplier_id)

    def require_party(self, kind: PartyKind, party_id: str) -> Party:
        """Get a customer or supplier or raise NotFoundError."""
        party = self.db.get_party(kind, party_id)
        if party is None:
            message = customer_not_found if kind is PartyKind.CUSTOMER else supplier_not_found
            raise NotFoundError(message(party_id))
        return party

    def list_customers(self) -> list[Party]:
        """List all customers."""
        return self.db.list_parties(PartyKind.CUSTOMER)

    def list_suppliers(self) -> list[Party]:
        """List all suppliers."""
        return self.db.list_parties(PartyKind.SUPPLIER)

    def delete_party(self, kind: PartyKind, party_id: str) -> None:
        """Delete a customer or supplier.

        Raises:
            ValidationError: If asked to delete the walk-in cash customer
            NotFoundError: If the party doesn't exist
        """
        if kind is PartyKind.CUSTOMER and party_id == CASH_CUSTOMER_ID:
            raise ValidationError("The walk-in cash customer cannot be deleted")
        self.require_party(kind, party_id)
        self.db.delete_party(kind, party_id)
        logger.info(f"Deleted {kind.value} {party_id}")

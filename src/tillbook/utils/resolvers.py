"""Resolve user-typed references (id, SKU or name) to stored entities."""

from tillbook.domain.entities import CashRegister, Party, PartyKind, Product
from tillbook.domain.errors import NotFoundError
from tillbook.domain.inventory import InventoryService
from tillbook.domain.ledger import LedgerService
from tillbook.domain.treasury import TreasuryService


def _by_name(items, reference: str, label: str):
    """Match an exact, case-insensitive name; ambiguity is an error."""
    wanted = reference.strip().lower()
    matches = [item for item in items if item.name.lower() == wanted]
    if len(matches) > 1:
        raise NotFoundError(f"{label} name '{reference}' is ambiguous; use the ID")
    if not matches:
        raise NotFoundError(f"{label} '{reference}' not found")
    return matches[0]


def resolve_product(inventory: InventoryService, reference: str) -> Product:
    """Resolve a product ID, SKU or name."""
    product = inventory.get_product(reference) or inventory.find_product_by_sku(reference)
    if product is not None:
        return product
    return _by_name(inventory.list_products(), reference, "Product")


def resolve_party(ledger: LedgerService, kind: PartyKind, reference: str) -> Party:
    """Resolve a customer or supplier ID or name."""
    if kind is PartyKind.CUSTOMER:
        party = ledger.get_customer(reference)
        candidates = ledger.list_customers
    else:
        party = ledger.get_supplier(reference)
        candidates = ledger.list_suppliers
    if party is not None:
        return party
    return _by_name(candidates(), reference, kind.value.capitalize())


def resolve_register(treasury: TreasuryService, reference: str) -> CashRegister:
    """Resolve a cash register ID or name."""
    register = treasury.get_register(reference)
    if register is not None:
        return register
    return _by_name(treasury.list_registers(), reference, "Cash register")

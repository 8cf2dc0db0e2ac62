"""Text formatting helpers shared by CLI commands."""

from decimal import Decimal

from tillbook.domain.entities import Balances, Price


def format_amount(amount: Decimal) -> str:
    """Two decimals with thousands separators."""
    return f"{amount:,.2f}"


def format_price(price: Price) -> str:
    return f"{format_amount(price.amount)} {price.currency.value}"


def format_quantity(quantity: Decimal) -> str:
    """Drop trailing zeros from stored quantities (12.000 -> 12)."""
    return f"{quantity.normalize():f}"


def format_balances(balances: Balances) -> str:
    return " | ".join(f"{c.value} {format_amount(v)}" for c, v in balances.items())

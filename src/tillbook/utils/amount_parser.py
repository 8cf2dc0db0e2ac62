"""Amount, quantity and price parsing utilities."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from tillbook.domain.entities import ANCHOR_CURRENCY, Currency, Price

# Symbols people type next to amounts, mapped to the currency they imply
_SYMBOLS = {"$": Currency.USD, "₺": Currency.TRY, "ل.س": Currency.SYP}


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles "1500", "1,500.25", "$12.50", "(20)" (negative in parentheses).

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    is_negative = text.startswith("(") and text.endswith(")")
    if is_negative:
        text = text[1:-1]

    for symbol in _SYMBOLS:
        text = text.replace(symbol, "")
    text = text.replace(",", "").strip()

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_quantity(quantity_str: str) -> Decimal:
    """Parse a strictly positive, possibly fractional quantity."""
    quantity = parse_amount(quantity_str)
    if quantity <= 0:
        raise ValueError(f"Quantity must be positive, got '{quantity_str}'")
    return quantity


def parse_price(price_str: str, default_currency: Optional[Currency] = None) -> Price:
    """Parse "12.5 USD", "USD 12.5", "$12.5" or a bare number into a Price.

    A bare number uses ``default_currency`` (the anchor currency if omitted).

    Raises:
        ValueError: If the amount or currency cannot be parsed
    """
    text = price_str.strip()
    currency = None
    match = re.fullmatch(r"([A-Za-z]{3})\s*(.+)|(.+?)\s*([A-Za-z]{3})", text)
    if match:
        code = match.group(1) or match.group(4)
        text = match.group(2) or match.group(3)
        try:
            currency = Currency(code.upper())
        except ValueError as e:
            raise ValueError(f"Unknown currency '{code}'") from e
    else:
        for symbol, implied in _SYMBOLS.items():
            if symbol in text:
                currency = implied
                break

    return Price(amount=parse_amount(text), currency=currency or default_currency or ANCHOR_CURRENCY)

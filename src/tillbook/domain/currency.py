"""Currency conversion against the anchor currency (SYP)."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from tillbook.domain.entities import ANCHOR_CURRENCY, Currency, ExchangeRates, Price
from tillbook.domain.errors import ConfigurationError, missing_exchange_rates

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round a monetary amount to two decimal places."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_rates(rates: Optional[ExchangeRates]) -> ExchangeRates:
    """Return rates unchanged, or raise ConfigurationError if unusable."""
    if rates is None:
        raise ConfigurationError(missing_exchange_rates())
    for currency, rate in ((Currency.USD, rates.usd), (Currency.TRY, rates.try_)):
        if rate is None or rate <= 0:
            raise ConfigurationError(
                f"Exchange rate for {currency.value} must be positive, got {rate}"
            )
    return rates


class CurrencyConverter:
    """Convert amounts between SYP, USD and TRY using a rate snapshot."""

    def __init__(self, rates: Optional[ExchangeRates]):
        """Initialize converter.

        Args:
            rates: Anchor units per USD and per TRY

        Raises:
            ConfigurationError: If rates are missing, zero or negative
        """
        self.rates = validate_rates(rates)

    def rate_for(self, currency: Currency) -> Decimal:
        """Anchor units per one unit of ``currency``."""
        currency = Currency(currency)
        if currency is ANCHOR_CURRENCY:
            return Decimal("1")
        if currency is Currency.USD:
            return self.rates.usd
        return self.rates.try_

    def to_anchor(self, price: Price) -> Decimal:
        """Convert a price to the anchor currency."""
        return price.amount * self.rate_for(price.currency)

    def from_anchor(self, amount_in_anchor: Decimal, target: Currency) -> Decimal:
        """Convert an anchor-currency amount into ``target``."""
        return amount_in_anchor / self.rate_for(target)

    def convert(self, price: Price, target: Currency) -> Decimal:
        """Convert a price into another currency through the anchor."""
        if price.currency == target:
            return price.amount
        return self.from_anchor(self.to_anchor(price), target)

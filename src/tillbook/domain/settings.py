"""Business settings service (exchange rates, company info)."""

from decimal import Decimal, InvalidOperation
from typing import Optional

from loguru import logger

from tillbook.database.base import Database
from tillbook.domain.currency import CurrencyConverter, validate_rates
from tillbook.domain.entities import Currency, ExchangeRates
from tillbook.domain.errors import ConfigurationError, missing_exchange_rates

EXCHANGE_RATES_KEY = "exchangeRates"
COMPANY_INFO_KEY = "companyInfo"


class SettingsService:
    """Service for reading and updating business configuration."""

    def __init__(self, db: Database):
        """Initialize settings service.

        Args:
            db: Database instance
        """
        self.db = db

    def get_exchange_rates(self) -> ExchangeRates:
        """Read the current rates.

        Raises:
            ConfigurationError: If rates are missing, unparsable or not positive
        """
        stored = self.db.get_setting(EXCHANGE_RATES_KEY)
        if not stored:
            raise ConfigurationError(missing_exchange_rates())
        try:
            rates = ExchangeRates(
                usd=Decimal(str(stored[Currency.USD.value])),
                try_=Decimal(str(stored[Currency.TRY.value])),
            )
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ConfigurationError(f"Invalid exchange rates setting: {stored!r}") from e
        return validate_rates(rates)

    def set_exchange_rates(self, usd: Decimal, try_: Decimal) -> ExchangeRates:
        """Validate and store new rates.

        Raises:
            ConfigurationError: If either rate is not positive
        """
        rates = validate_rates(ExchangeRates(usd=Decimal(usd), try_=Decimal(try_)))
        self.db.set_setting(
            EXCHANGE_RATES_KEY,
            {Currency.USD.value: str(rates.usd), Currency.TRY.value: str(rates.try_)},
        )
        logger.info(f"Exchange rates set: USD={rates.usd} TRY={rates.try_}")
        return rates

    def converter(self) -> CurrencyConverter:
        """Build a converter from freshly read rates."""
        return CurrencyConverter(self.get_exchange_rates())

    def get_company_info(self) -> dict[str, str]:
        """Company name, address and phone (empty strings when unset)."""
        stored = self.db.get_setting(COMPANY_INFO_KEY) or {}
        return {
            "name": stored.get("name", ""),
            "address": stored.get("address", ""),
            "phone": stored.get("phone", ""),
        }

    def set_company_info(
        self,
        name: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> dict[str, str]:
        """Update the given company fields, leaving the others unchanged."""
        info = self.get_company_info()
        for key, value in (("name", name), ("address", address), ("phone", phone)):
            if value is not None:
                info[key] = value
        self.db.set_setting(COMPANY_INFO_KEY, info)
        return info

from enum import Enum

from pydantic import BaseModel


class FiatCurrency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    SEK = "SEK"
    DKK = "DKK"
    NOK = "NOK"
    JPY = "JPY"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def is_base(self) -> bool:
        return self is BASE_CURRENCY

    @property
    def extra_decimals(self) -> int:
        """Decimal places to add (or drop) compared to a USD price."""
        return _EXTRA_DECIMALS[self]


BASE_CURRENCY = FiatCurrency.USD

_EXTRA_DECIMALS = {
    FiatCurrency.USD: 0,
    FiatCurrency.EUR: 0,
    FiatCurrency.SEK: -1,
    FiatCurrency.DKK: -1,
    FiatCurrency.NOK: -1,
    FiatCurrency.JPY: -2,
}


class ExchangeRate(BaseModel):
    currency: FiatCurrency
    rate: float
    observed_at: int

from typing import Literal

from pydantic import BaseModel

from coinboard.schemas.currency import FiatCurrency


class PricePoint(BaseModel):
    price: float
    minutes_ago: int


class CoinPriceRow(BaseModel):
    coin_id: int
    symbol: str
    name: str
    decimals: int
    quote: PricePoint | None = None


class CurrencyStatus(BaseModel):
    kind: Literal["base", "unavailable", "available"]
    rate: float | None = None
    is_stale: bool | None = None


class CurrencyRow(BaseModel):
    currency: FiatCurrency
    is_selected: bool
    name: str
    status: CurrencyStatus


class ViewState(BaseModel):
    currency: FiatCurrency
    coins: list[CoinPriceRow]
    currencies: list[CurrencyRow]


class CoinDetails(BaseModel):
    row: CoinPriceRow
    currency: FiatCurrency
    exchange_rate: float
    market_cap: float
    volume_24h: float

from pydantic import BaseModel

from coinboard.schemas.currency import FiatCurrency


class CurrencyChangeRequest(BaseModel):
    currency: FiatCurrency


class SelectionResponse(BaseModel):
    tracked_coins: list[int]
    currency: FiatCurrency


class RemoveCoinResponse(SelectionResponse):
    removed: bool

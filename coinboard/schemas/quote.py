from pydantic import BaseModel, Field


class UsdQuote(BaseModel):
    price: float = Field(ge=0)
    volume_24h: float = Field(default=0.0, ge=0)
    market_cap: float = Field(default=0.0, ge=0)
    last_updated: int


class CoinQuote(BaseModel):
    coin_id: int
    symbol: str
    name: str
    usd: UsdQuote | None = None


class DatedPrice(BaseModel):
    ts: int
    price: float

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, field_validator, model_validator

from coinboard.schemas.currency import FiatCurrency

_DEFAULT_COINS = [1, 1027]
_DEFAULT_CURRENCIES = ["USD", "EUR", "SEK", "DKK"]


def _split_csv(raw: str) -> list[str]:
    out: list[str] = []
    for item in raw.split(","):
        value = item.strip()
        if value and value not in out:
            out.append(value)
    return out


class Settings(BaseModel):
    COINBOARD_FEED_MODE: Literal["demo", "live"] = "demo"
    COINBOARD_CMC_API_KEY: str | None = None
    COINBOARD_FIXER_API_KEY: str | None = None
    COINBOARD_COINS: list[int]
    COINBOARD_CURRENCIES: list[FiatCurrency]
    COINBOARD_PRICE_POLL_SEC: float = 10.0
    COINBOARD_RATE_POLL_SEC: float = 300.0
    COINBOARD_FRESHNESS_OFFSET_MIN: int = 0

    @field_validator("COINBOARD_COINS", "COINBOARD_CURRENCIES")
    @classmethod
    def _unique(cls, values: list) -> list:
        return list(dict.fromkeys(values))

    @model_validator(mode="after")
    def _live_mode_needs_keys(self) -> "Settings":
        if self.COINBOARD_FEED_MODE == "live":
            missing = [
                name
                for name in ("COINBOARD_CMC_API_KEY", "COINBOARD_FIXER_API_KEY")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"live feed mode requires {', '.join(missing)}")
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        coins = _split_csv(os.getenv("COINBOARD_COINS", "")) or _DEFAULT_COINS
        currencies = _split_csv(os.getenv("COINBOARD_CURRENCIES", "").upper()) or _DEFAULT_CURRENCIES

        raw = {
            "COINBOARD_FEED_MODE": os.getenv("COINBOARD_FEED_MODE", "demo"),
            "COINBOARD_CMC_API_KEY": os.getenv("COINBOARD_CMC_API_KEY"),
            "COINBOARD_FIXER_API_KEY": os.getenv("COINBOARD_FIXER_API_KEY"),
            "COINBOARD_COINS": coins,
            "COINBOARD_CURRENCIES": currencies,
        }
        for name in (
            "COINBOARD_PRICE_POLL_SEC",
            "COINBOARD_RATE_POLL_SEC",
            "COINBOARD_FRESHNESS_OFFSET_MIN",
        ):
            value = os.getenv(name)
            if value:
                raw[name] = value
        return cls.model_validate(raw)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()

from __future__ import annotations

import random
import time
from typing import Dict, Iterable, List, Tuple

from coinboard.schemas.currency import FiatCurrency
from coinboard.schemas.quote import CoinQuote, DatedPrice, UsdQuote

_DEMO_COINS = {
    1: ("BTC", "Bitcoin", 60000.0),
    1027: ("ETH", "Ethereum", 3000.0),
    52: ("XRP", "XRP", 0.6),
    2: ("LTC", "Litecoin", 80.0),
    5426: ("SOL", "Solana", 150.0),
    24478: ("PEPE", "Pepe", 0.00001),
}

_DEMO_RATES = {
    FiatCurrency.USD: 1.0,
    FiatCurrency.EUR: 0.9,
    FiatCurrency.DKK: 6.74,
    FiatCurrency.SEK: 10.24,
    FiatCurrency.NOK: 10.6,
    FiatCurrency.JPY: 150.0,
}


def _close_by(value: float, spread: float = 0.03) -> float:
    return value * random.uniform(1 - spread, 1 + spread)


class DemoCoinFeed:
    """In-memory coin feed with prices jittered around fixed anchors."""

    def __init__(self, coins: Dict[int, Tuple[str, str, float]] | None = None) -> None:
        self.coins = dict(coins or _DEMO_COINS)

    def _quote(self, coin_id: int) -> CoinQuote:
        symbol, name, anchor = self.coins.get(coin_id, (f"CN{coin_id}", f"SuperCoin{coin_id}", 100.0))
        return CoinQuote(
            coin_id=coin_id,
            symbol=symbol,
            name=name,
            usd=UsdQuote(
                price=_close_by(anchor),
                volume_24h=_close_by(anchor * 10000),
                market_cap=_close_by(anchor * 10000000),
                last_updated=int(time.time()),
            ),
        )

    def list_coins(self) -> List[CoinQuote]:
        return [self._quote(coin_id) for coin_id in self.coins]

    def poll_prices(self, coin_ids: Iterable[int]) -> Dict[int, CoinQuote]:
        return {coin_id: self._quote(coin_id) for coin_id in coin_ids}

    def price_history(self, coin_id: int, days: int = 30) -> List[DatedPrice]:
        price = self._quote(coin_id).usd.price
        ts = int(time.time()) - days * 86400
        out: List[DatedPrice] = []
        for _ in range(days):
            ts += 86400
            price = _close_by(price)
            out.append(DatedPrice(ts=ts, price=price))
        return out


class DemoRateFeed:
    def __init__(self, rates: Dict[FiatCurrency, float] | None = None) -> None:
        self.rates = dict(rates or _DEMO_RATES)

    def poll_rates(self, currencies: Iterable[FiatCurrency]) -> Dict[FiatCurrency, Tuple[float, int]]:
        now = int(time.time())
        out: Dict[FiatCurrency, Tuple[float, int]] = {}
        for currency in currencies:
            if currency.is_base:
                out[currency] = (1.0, now)
                continue
            anchor = self.rates.setdefault(currency, random.uniform(1, 10))
            out[currency] = (_close_by(anchor, 0.02), now)
        return out

from __future__ import annotations

from typing import Iterable

from coinboard.errors import DuplicateSelectionError
from coinboard.schemas.currency import BASE_CURRENCY, FiatCurrency


class SelectionState:
    def __init__(self, coins: Iterable[int] = (), currency: FiatCurrency = BASE_CURRENCY) -> None:
        self._tracked: list[int] = []
        self.active_currency = currency
        for coin_id in coins:
            self.add(coin_id)

    @property
    def tracked_coins(self) -> list[int]:
        return list(self._tracked)

    def is_tracked(self, coin_id: int) -> bool:
        return coin_id in self._tracked

    def add(self, coin_id: int) -> None:
        if coin_id in self._tracked:
            raise DuplicateSelectionError("DUPLICATE_SELECTION")
        self._tracked.append(coin_id)

    def remove(self, coin_id: int) -> bool:
        if coin_id not in self._tracked:
            return False
        self._tracked.remove(coin_id)
        return True

    def set_currency(self, currency: FiatCurrency) -> None:
        self.active_currency = currency

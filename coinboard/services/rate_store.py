from __future__ import annotations

from typing import Mapping

from coinboard.schemas.currency import BASE_CURRENCY, ExchangeRate, FiatCurrency


class RateStore:
    """Latest known USD->fiat rate per currency.

    The base currency is seeded on construction and always stored at exactly 1.
    """

    def __init__(self, *, observed_at: int) -> None:
        self._rows: dict[FiatCurrency, ExchangeRate] = {
            BASE_CURRENCY: ExchangeRate(currency=BASE_CURRENCY, rate=1.0, observed_at=observed_at),
        }

    def merge(self, updates: Mapping[FiatCurrency, tuple[float, int]]) -> int:
        for currency, (rate, observed_at) in updates.items():
            if currency is BASE_CURRENCY:
                rate = 1.0
            self._rows[currency] = ExchangeRate(
                currency=currency,
                rate=float(rate),
                observed_at=int(observed_at),
            )
        return len(updates)

    def get(self, currency: FiatCurrency) -> ExchangeRate | None:
        return self._rows.get(currency)

    def list_all(self) -> list[ExchangeRate]:
        return list(self._rows.values())

    def __len__(self) -> int:
        return len(self._rows)

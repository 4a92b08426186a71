from __future__ import annotations

import threading
import time
from typing import Callable, Iterable

from coinboard.errors import FeedUnavailableError
from coinboard.schemas.currency import BASE_CURRENCY, FiatCurrency
from coinboard.schemas.quote import DatedPrice
from coinboard.schemas.view import CoinDetails, CoinPriceRow, ViewState
from coinboard.services import reconciler
from coinboard.services.feed_coordinator import FeedCoordinator
from coinboard.services.quote_store import QuoteStore
from coinboard.services.rate_store import RateStore
from coinboard.services.selection_state import SelectionState


class WatchlistSession:
    """One user's watchlist: stores, selection and the feeds that fill them.

    Every read and mutation runs under one lock shared with the coordinator, so
    a feed merge is never observed half applied.
    """

    def __init__(
        self,
        *,
        coin_feed,
        rate_feed,
        coins: Iterable[int],
        currencies: Iterable[FiatCurrency],
        price_interval_sec: float = 10.0,
        rate_interval_sec: float = 300.0,
        freshness_offset_min: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.coin_feed = coin_feed
        self.currencies = list(currencies)
        self.freshness_offset_min = freshness_offset_min
        self._clock = clock
        self._lock = threading.RLock()

        self.quote_store = QuoteStore()
        self.rate_store = RateStore(observed_at=int(clock()))
        self.selection = SelectionState(coins, currency=BASE_CURRENCY)
        self.coordinator = FeedCoordinator(
            quote_store=self.quote_store,
            rate_store=self.rate_store,
            coin_feed=coin_feed,
            rate_feed=rate_feed,
            currencies=self.currencies,
            lock=self._lock,
            price_interval_sec=price_interval_sec,
            rate_interval_sec=rate_interval_sec,
        )
        self.coordinator.set_tracked_coins(self.selection.tracked_coins)

    def _now(self, now: int | None) -> int:
        return int(self._clock()) if now is None else now

    def start(self) -> None:
        self.coordinator.start()

    def stop(self) -> None:
        self.coordinator.stop()

    def add_coin(self, coin_id: int) -> list[int]:
        with self._lock:
            self.selection.add(coin_id)
            tracked = self.selection.tracked_coins
            self.coordinator.set_tracked_coins(tracked)
        print(f"[SESSION][coin_added] coin={coin_id}", flush=True)
        return tracked

    def remove_coin(self, coin_id: int) -> bool:
        with self._lock:
            removed = self.selection.remove(coin_id)
            if removed:
                self.coordinator.set_tracked_coins(self.selection.tracked_coins)
        if removed:
            print(f"[SESSION][coin_removed] coin={coin_id}", flush=True)
        return removed

    def set_currency(self, currency: FiatCurrency) -> None:
        with self._lock:
            self.selection.set_currency(currency)
        print(f"[SESSION][currency_changed] currency={currency.value}", flush=True)

    @property
    def tracked_coins(self) -> list[int]:
        with self._lock:
            return self.selection.tracked_coins

    @property
    def active_currency(self) -> FiatCurrency:
        with self._lock:
            return self.selection.active_currency

    def view_state(self, now: int | None = None) -> ViewState:
        ref = self._now(now)
        with self._lock:
            return reconciler.build_view_state(
                self.quote_store,
                self.rate_store,
                self.selection,
                self.currencies,
                now=ref,
                freshness_offset_min=self.freshness_offset_min,
            )

    def available_coins(self, now: int | None = None) -> list[CoinPriceRow]:
        ref = self._now(now)
        with self._lock:
            return reconciler.available_coin_rows(
                self.coordinator.catalog,
                self.quote_store,
                self.rate_store,
                self.selection,
                now=ref,
                freshness_offset_min=self.freshness_offset_min,
            )

    def coin_details(self, coin_id: int, now: int | None = None) -> CoinDetails:
        ref = self._now(now)
        with self._lock:
            return reconciler.coin_details(
                coin_id,
                self.quote_store,
                self.rate_store,
                self.selection,
                now=ref,
                freshness_offset_min=self.freshness_offset_min,
            )

    def price_history(self, coin_id: int, days: int = 30) -> list[DatedPrice] | None:
        """USD history from the coin feed, converted into the active currency.

        Returns None when the feed fails or the active currency has no rate.
        """
        try:
            history = self.coin_feed.price_history(coin_id, days)
        except FeedUnavailableError as exc:
            print(f"[SESSION][price_history_error] coin={coin_id} error={exc}", flush=True)
            return None

        with self._lock:
            rate = self.rate_store.get(self.selection.active_currency)
        if rate is None:
            return None
        return [DatedPrice(ts=p.ts, price=p.price * rate.rate) for p in history]

    def metrics(self) -> dict:
        metrics = self.coordinator.metrics()
        with self._lock:
            metrics.update(
                {
                    "cached_quotes": len(self.quote_store),
                    "cached_rates": len(self.rate_store),
                    "active_currency": self.selection.active_currency.value,
                }
            )
        return metrics

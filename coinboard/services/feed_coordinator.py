from __future__ import annotations

import threading
from typing import Iterable

from coinboard.errors import FeedUnavailableError
from coinboard.schemas.currency import FiatCurrency
from coinboard.schemas.quote import CoinQuote
from coinboard.services.quote_store import QuoteStore
from coinboard.services.rate_store import RateStore


def _fmt_coins(coin_ids: Iterable[int]) -> str:
    return ",".join(str(c) for c in coin_ids)


class FeedCoordinator:
    """Polls the coin and rate feeds and routes each batch into the stores.

    ``coin_feed`` needs ``list_coins()`` and ``poll_prices(coin_ids)``;
    ``rate_feed`` needs ``poll_rates(currencies)``. Both raise
    ``FeedUnavailableError`` on failure, which is logged and counted here and
    never propagated. All store writes happen under ``lock``.
    """

    def __init__(
        self,
        *,
        quote_store: QuoteStore,
        rate_store: RateStore,
        coin_feed,
        rate_feed,
        currencies: Iterable[FiatCurrency],
        lock: threading.RLock | None = None,
        price_interval_sec: float = 10.0,
        rate_interval_sec: float = 300.0,
        join_timeout_sec: float = 1.0,
    ) -> None:
        self.quote_store = quote_store
        self.rate_store = rate_store
        self.coin_feed = coin_feed
        self.rate_feed = rate_feed
        self.currencies = list(currencies)
        self.lock = lock or threading.RLock()
        self.price_interval_sec = price_interval_sec
        self.rate_interval_sec = rate_interval_sec
        self.join_timeout_sec = join_timeout_sec

        self.catalog: list[CoinQuote] = []
        self._coin_ids: tuple[int, ...] = ()
        self._generation = 0
        self._stopped = False
        self._running = False
        self._run_id = 0
        self._stop_event = threading.Event()
        self._price_wakeup = threading.Event()
        self._price_thread: threading.Thread | None = None
        self._rate_thread: threading.Thread | None = None
        self._metrics = {
            "listing_loaded": False,
            "listing_errors": 0,
            "price_polls": 0,
            "price_poll_errors": 0,
            "price_polls_superseded": 0,
            "rate_polls": 0,
            "rate_poll_errors": 0,
            "last_price_merge_count": 0,
            "last_rate_merge_count": 0,
        }

    @property
    def tracked_coins(self) -> tuple[int, ...]:
        return self._coin_ids

    def set_tracked_coins(self, coin_ids: Iterable[int]) -> None:
        """Re-parametrise the price poller; in-flight results for the old set are dropped."""
        with self.lock:
            new_ids = tuple(coin_ids)
            if new_ids == self._coin_ids:
                return
            self._coin_ids = new_ids
            self._generation += 1
            wakeup = self._price_wakeup
        wakeup.set()

    def load_listing(self, run_id: int | None = None) -> int:
        """Replace the catalog and the quote store with the feed listing.

        ``run_id`` ties a background load to the run that started it; a load
        finishing after that run was stopped is dropped.
        """
        try:
            listing = self.coin_feed.list_coins()
        except FeedUnavailableError as exc:
            with self.lock:
                self._metrics["listing_errors"] += 1
            print(f"[FEED][listing_error] error={exc}", flush=True)
            return 0

        with self.lock:
            if self._stopped or (run_id is not None and run_id != self._run_id):
                return 0
            self.catalog = list(listing)
            self.quote_store.replace_all(self.catalog)
            self._metrics["listing_loaded"] = True
        print(f"[FEED][listing_loaded] coins={len(listing)}", flush=True)
        return len(listing)

    def refresh_prices(self) -> int:
        with self.lock:
            if self._stopped:
                return 0
            coin_ids = self._coin_ids
            generation = self._generation
        if not coin_ids:
            return 0

        try:
            updates = self.coin_feed.poll_prices(set(coin_ids))
        except FeedUnavailableError as exc:
            with self.lock:
                self._metrics["price_poll_errors"] += 1
            print(f"[FEED][price_poll_error] coins={_fmt_coins(coin_ids)} error={exc}", flush=True)
            return 0

        with self.lock:
            if self._stopped:
                return 0
            if generation != self._generation:
                self._metrics["price_polls_superseded"] += 1
                print(f"[FEED][price_poll_superseded] coins={_fmt_coins(coin_ids)}", flush=True)
                return 0
            written = self.quote_store.merge(updates)
            self._metrics["price_polls"] += 1
            self._metrics["last_price_merge_count"] = written
        return written

    def refresh_rates(self) -> int:
        with self.lock:
            if self._stopped:
                return 0
        wanted = set(self.currencies)

        try:
            updates = self.rate_feed.poll_rates(wanted)
        except FeedUnavailableError as exc:
            with self.lock:
                self._metrics["rate_poll_errors"] += 1
            print(f"[FEED][rate_poll_error] error={exc}", flush=True)
            return 0

        filtered = {c: v for c, v in updates.items() if c in wanted}
        with self.lock:
            if self._stopped:
                return 0
            written = self.rate_store.merge(filtered)
            self._metrics["rate_polls"] += 1
            self._metrics["last_rate_merge_count"] = written
        return written

    def _price_loop(self, run_id: int, stop_event: threading.Event, wakeup: threading.Event) -> None:
        self.load_listing(run_id=run_id)
        while not stop_event.is_set():
            try:
                self.refresh_prices()
            except Exception as exc:  # pragma: no cover
                print(f"[FEED][price_loop_error] error={exc}", flush=True)
            wakeup.wait(self.price_interval_sec)
            wakeup.clear()

    def _rate_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self.refresh_rates()
            except Exception as exc:  # pragma: no cover
                print(f"[FEED][rate_loop_error] error={exc}", flush=True)
            stop_event.wait(self.rate_interval_sec)

    def start(self) -> None:
        with self.lock:
            if self._running:
                return
            self._running = True
            self._stopped = False
            self._run_id += 1
            run_id = self._run_id
            # each run owns its events so a thread left over from a timed-out
            # stop keeps seeing its own stop signal and exits on return
            stop_event = threading.Event()
            wakeup = threading.Event()
            self._stop_event = stop_event
            self._price_wakeup = wakeup
        self._price_thread = threading.Thread(
            target=self._price_loop, args=(run_id, stop_event, wakeup), daemon=True, name="coin-price-poller"
        )
        self._rate_thread = threading.Thread(
            target=self._rate_loop, args=(stop_event,), daemon=True, name="fiat-rate-poller"
        )
        self._price_thread.start()
        self._rate_thread.start()
        print(
            f"[FEED][coordinator_start] run={run_id} coins={_fmt_coins(self._coin_ids)} "
            f"currencies={','.join(c.value for c in self.currencies)}",
            flush=True,
        )

    def stop(self) -> None:
        with self.lock:
            self._stopped = True
            self._running = False
            # in-flight price batches belong to the run being stopped
            self._generation += 1
            stop_event = self._stop_event
            wakeup = self._price_wakeup
        stop_event.set()
        wakeup.set()
        for thread in (self._price_thread, self._rate_thread):
            if thread and thread.is_alive():
                thread.join(timeout=self.join_timeout_sec)
                if thread.is_alive():
                    print(f"[FEED][coordinator_stop_timeout] thread={thread.name}", flush=True)
        print("[FEED][coordinator_stop]", flush=True)

    def metrics(self) -> dict:
        with self.lock:
            return {
                **self._metrics,
                "tracked_coins": list(self._coin_ids),
                "catalog_size": len(self.catalog),
            }

"""Derives render-ready rows from the stores, the selection and an explicit ``now``.

Every function here is pure: it never reads the wall clock and never mutates
its inputs, so the same inputs always give the same rows.
"""
from __future__ import annotations

import math
from typing import Iterable

from coinboard.errors import CoinNotDisplayedError, MissingRateError, QuoteUnavailableError
from coinboard.schemas.currency import FiatCurrency
from coinboard.schemas.quote import CoinQuote, UsdQuote
from coinboard.schemas.view import (
    CoinDetails,
    CoinPriceRow,
    CurrencyRow,
    CurrencyStatus,
    PricePoint,
    ViewState,
)
from coinboard.services.quote_store import QuoteStore
from coinboard.services.rate_store import RateStore
from coinboard.services.selection_state import SelectionState

COIN_DECIMALS: dict[int, int] = {1: 0, 2: 2, 52: 3, 24478: 8, 1027: 0, 5426: 2}
DEFAULT_DECIMALS = 2
RATE_STALE_AFTER_SEC = 7 * 24 * 60 * 60


def decimal_places(coin_id: int, currency: FiatCurrency) -> int:
    places = COIN_DECIMALS.get(coin_id, DEFAULT_DECIMALS) + currency.extra_decimals
    if places < 0:
        return 0
    if places == 1:
        # a single decimal looks odd next to the other rows
        return 2
    return places


def convert_quote(
    usd: UsdQuote,
    rate: float,
    *,
    now: int,
    freshness_offset_min: int = 0,
) -> PricePoint:
    minutes_ago = math.floor((now - usd.last_updated) / 60)
    return PricePoint(
        price=usd.price * rate,
        minutes_ago=max(minutes_ago - freshness_offset_min, 0),
    )


def _price_point(
    quote: CoinQuote,
    rate_store: RateStore,
    currency: FiatCurrency,
    *,
    now: int,
    freshness_offset_min: int,
) -> PricePoint | None:
    rate = rate_store.get(currency)
    if quote.usd is None or rate is None:
        return None
    return convert_quote(quote.usd, rate.rate, now=now, freshness_offset_min=freshness_offset_min)


def _row(
    quote: CoinQuote,
    rate_store: RateStore,
    currency: FiatCurrency,
    *,
    now: int,
    freshness_offset_min: int,
) -> CoinPriceRow:
    return CoinPriceRow(
        coin_id=quote.coin_id,
        symbol=quote.symbol,
        name=quote.name,
        decimals=decimal_places(quote.coin_id, currency),
        quote=_price_point(
            quote, rate_store, currency, now=now, freshness_offset_min=freshness_offset_min
        ),
    )


def coin_rows(
    quote_store: QuoteStore,
    rate_store: RateStore,
    selection: SelectionState,
    *,
    now: int,
    freshness_offset_min: int = 0,
) -> list[CoinPriceRow]:
    """One row per tracked coin that has stored data, in tracking order."""
    out: list[CoinPriceRow] = []
    for coin_id in selection.tracked_coins:
        quote = quote_store.get(coin_id)
        if quote is None:
            continue
        out.append(
            _row(
                quote,
                rate_store,
                selection.active_currency,
                now=now,
                freshness_offset_min=freshness_offset_min,
            )
        )
    return out


def currency_status(
    rate_store: RateStore,
    currency: FiatCurrency,
    *,
    now: int,
    stale_after_sec: int = RATE_STALE_AFTER_SEC,
) -> CurrencyStatus:
    if currency.is_base:
        return CurrencyStatus(kind="base")
    rate = rate_store.get(currency)
    if rate is None:
        return CurrencyStatus(kind="unavailable")
    return CurrencyStatus(
        kind="available",
        rate=rate.rate,
        is_stale=(now - rate.observed_at) > stale_after_sec,
    )


def currency_rows(
    rate_store: RateStore,
    currencies: Iterable[FiatCurrency],
    active: FiatCurrency,
    *,
    now: int,
    stale_after_sec: int = RATE_STALE_AFTER_SEC,
) -> list[CurrencyRow]:
    return [
        CurrencyRow(
            currency=currency,
            is_selected=currency == active,
            name=currency.display_name,
            status=currency_status(rate_store, currency, now=now, stale_after_sec=stale_after_sec),
        )
        for currency in currencies
    ]


def build_view_state(
    quote_store: QuoteStore,
    rate_store: RateStore,
    selection: SelectionState,
    currencies: Iterable[FiatCurrency],
    *,
    now: int,
    freshness_offset_min: int = 0,
) -> ViewState:
    return ViewState(
        currency=selection.active_currency,
        coins=coin_rows(
            quote_store,
            rate_store,
            selection,
            now=now,
            freshness_offset_min=freshness_offset_min,
        ),
        currencies=currency_rows(rate_store, currencies, selection.active_currency, now=now),
    )


def available_coin_rows(
    catalog: Iterable[CoinQuote],
    quote_store: QuoteStore,
    rate_store: RateStore,
    selection: SelectionState,
    *,
    now: int,
    freshness_offset_min: int = 0,
) -> list[CoinPriceRow]:
    """Known coins not yet tracked, sorted by symbol.

    Known means listed in the catalog or held in the quote store, so a coin
    that was only ever polled can still be added back after removal. The
    store entry wins over the listing snapshot.
    """
    known: dict[int, CoinQuote] = {q.coin_id: q for q in catalog}
    known.update((q.coin_id, q) for q in quote_store.list_all())

    out: list[CoinPriceRow] = []
    for quote in sorted(known.values(), key=lambda q: q.symbol):
        if selection.is_tracked(quote.coin_id):
            continue
        out.append(
            _row(
                quote,
                rate_store,
                selection.active_currency,
                now=now,
                freshness_offset_min=freshness_offset_min,
            )
        )
    return out


def coin_details(
    coin_id: int,
    quote_store: QuoteStore,
    rate_store: RateStore,
    selection: SelectionState,
    *,
    now: int,
    freshness_offset_min: int = 0,
) -> CoinDetails:
    rows = coin_rows(
        quote_store, rate_store, selection, now=now, freshness_offset_min=freshness_offset_min
    )
    row = next((r for r in rows if r.coin_id == coin_id), None)
    if row is None:
        raise CoinNotDisplayedError("COIN_NOT_DISPLAYED")

    currency = selection.active_currency
    rate = rate_store.get(currency)
    quote = quote_store.get(coin_id)
    if rate is None:
        raise MissingRateError("RATE_UNAVAILABLE")
    if quote is None or quote.usd is None:
        raise QuoteUnavailableError("QUOTE_UNAVAILABLE")

    return CoinDetails(
        row=row,
        currency=currency,
        exchange_rate=rate.rate,
        market_cap=quote.usd.market_cap * rate.rate,
        volume_24h=quote.usd.volume_24h * rate.rate,
    )

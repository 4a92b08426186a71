import unittest

from coinboard.errors import CoinNotDisplayedError, MissingRateError, QuoteUnavailableError
from coinboard.schemas.currency import FiatCurrency
from coinboard.schemas.quote import CoinQuote, UsdQuote
from coinboard.services import reconciler
from coinboard.services.quote_store import QuoteStore
from coinboard.services.rate_store import RateStore
from coinboard.services.selection_state import SelectionState

NOW = 1_700_000_000
DAY = 24 * 60 * 60


def _quote(coin_id: int, price: float | None, ts: int = NOW, symbol: str | None = None) -> CoinQuote:
    usd = None
    if price is not None:
        usd = UsdQuote(price=price, volume_24h=price * 2, market_cap=price * 10, last_updated=ts)
    return CoinQuote(
        coin_id=coin_id,
        symbol=symbol or f"C{coin_id}",
        name=f"Coin {coin_id}",
        usd=usd,
    )


class DecimalPlacesTest(unittest.TestCase):
    def test_base_zero_with_negative_offset_clamps_to_zero(self):
        # coin 1 is configured at 0 decimals
        self.assertEqual(reconciler.decimal_places(1, FiatCurrency.SEK), 0)

    def test_one_decimal_is_bumped_to_two(self):
        # coin 2 is configured at 2 decimals; SEK drops one
        self.assertEqual(reconciler.decimal_places(2, FiatCurrency.SEK), 2)

    def test_unknown_coin_uses_default(self):
        self.assertEqual(reconciler.decimal_places(123456, FiatCurrency.USD), reconciler.DEFAULT_DECIMALS)

    def test_large_precision_shrinks_by_currency_offset(self):
        self.assertEqual(reconciler.decimal_places(24478, FiatCurrency.JPY), 6)
        self.assertEqual(reconciler.decimal_places(52, FiatCurrency.EUR), 3)

    def test_yen_offset_clamps(self):
        self.assertEqual(reconciler.decimal_places(5426, FiatCurrency.JPY), 0)


class CoinRowsTest(unittest.TestCase):
    def setUp(self):
        self.quotes = QuoteStore()
        self.rates = RateStore(observed_at=NOW)
        self.selection = SelectionState()

    def test_scenario_sek_conversion(self):
        self.quotes.merge({7: _quote(7, 100.0, ts=NOW - 90)})
        self.rates.merge({FiatCurrency.SEK: (10.0, NOW - 60)})
        self.selection.add(7)
        self.selection.set_currency(FiatCurrency.SEK)

        rows = reconciler.coin_rows(self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual(len(rows), 1)
        self.assertAlmostEqual(rows[0].quote.price, 1000.0)
        self.assertEqual(rows[0].quote.minutes_ago, 1)

    def test_freshness_offset_applied_and_floored(self):
        self.quotes.merge({7: _quote(7, 100.0, ts=NOW - 90)})
        self.selection.add(7)

        rows = reconciler.coin_rows(
            self.quotes, self.rates, self.selection, now=NOW, freshness_offset_min=1
        )
        self.assertEqual(rows[0].quote.minutes_ago, 0)

        rows = reconciler.coin_rows(
            self.quotes, self.rates, self.selection, now=NOW, freshness_offset_min=5
        )
        self.assertEqual(rows[0].quote.minutes_ago, 0)

    def test_future_timestamp_reports_zero_minutes(self):
        self.quotes.merge({7: _quote(7, 1.0, ts=NOW + 600)})
        self.selection.add(7)

        rows = reconciler.coin_rows(self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual(rows[0].quote.minutes_ago, 0)

    def test_coin_without_stored_data_is_skipped(self):
        self.quotes.merge({1: _quote(1, 10.0)})
        self.selection.add(99)
        self.selection.add(1)

        rows = reconciler.coin_rows(self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual([r.coin_id for r in rows], [1])

    def test_missing_rate_yields_row_without_price(self):
        self.quotes.merge({1: _quote(1, 10.0)})
        self.selection.add(1)
        self.selection.set_currency(FiatCurrency.NOK)

        rows = reconciler.coin_rows(self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual(rows[0].symbol, "C1")
        self.assertIsNone(rows[0].quote)

    def test_missing_usd_quote_yields_row_without_price(self):
        self.quotes.merge({1: _quote(1, None)})
        self.selection.add(1)

        rows = reconciler.coin_rows(self.quotes, self.rates, self.selection, now=NOW)

        self.assertIsNone(rows[0].quote)

    def test_rows_follow_tracking_order(self):
        self.quotes.merge({1: _quote(1, 1.0), 2: _quote(2, 2.0), 3: _quote(3, 3.0)})
        for coin_id in (3, 1, 2):
            self.selection.add(coin_id)

        rows = reconciler.coin_rows(self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual([r.coin_id for r in rows], [3, 1, 2])

    def test_view_state_is_pure(self):
        self.quotes.merge({1: _quote(1, 10.0, ts=NOW - 300)})
        self.rates.merge({FiatCurrency.EUR: (0.9, NOW - DAY)})
        self.selection.add(1)
        self.selection.set_currency(FiatCurrency.EUR)
        currencies = [FiatCurrency.USD, FiatCurrency.EUR, FiatCurrency.SEK]

        first = reconciler.build_view_state(self.quotes, self.rates, self.selection, currencies, now=NOW)
        second = reconciler.build_view_state(self.quotes, self.rates, self.selection, currencies, now=NOW)

        self.assertEqual(first, second)
        self.assertEqual(first.currency, FiatCurrency.EUR)
        self.assertEqual(self.selection.tracked_coins, [1])


class CurrencyRowsTest(unittest.TestCase):
    def setUp(self):
        self.rates = RateStore(observed_at=NOW)

    def test_statuses(self):
        self.rates.merge({FiatCurrency.SEK: (10.0, NOW - 60)})
        currencies = [FiatCurrency.USD, FiatCurrency.SEK, FiatCurrency.DKK]

        rows = reconciler.currency_rows(self.rates, currencies, FiatCurrency.SEK, now=NOW)

        self.assertEqual([r.currency for r in rows], currencies)
        self.assertEqual(rows[0].status.kind, "base")
        self.assertEqual(rows[1].status.kind, "available")
        self.assertEqual(rows[1].status.rate, 10.0)
        self.assertFalse(rows[1].status.is_stale)
        self.assertEqual(rows[2].status.kind, "unavailable")
        self.assertEqual([r.is_selected for r in rows], [False, True, False])
        self.assertEqual(rows[1].name, "SEK")

    def test_rate_older_than_seven_days_is_stale(self):
        self.rates.merge({FiatCurrency.DKK: (6.7, NOW - 8 * DAY)})

        status = reconciler.currency_status(self.rates, FiatCurrency.DKK, now=NOW)

        self.assertEqual(status.kind, "available")
        self.assertTrue(status.is_stale)

    def test_rate_six_days_old_is_fresh(self):
        self.rates.merge({FiatCurrency.DKK: (6.7, NOW - 6 * DAY)})

        status = reconciler.currency_status(self.rates, FiatCurrency.DKK, now=NOW)

        self.assertFalse(status.is_stale)


class AvailableCoinsTest(unittest.TestCase):
    def test_untracked_catalog_coins_sorted_by_symbol_with_latest_price(self):
        quotes = QuoteStore()
        rates = RateStore(observed_at=NOW)
        catalog = [
            _quote(1, 100.0, symbol="BTC"),
            _quote(52, 1.0, symbol="XRP"),
            _quote(1027, 10.0, symbol="ETH"),
        ]
        quotes.replace_all(catalog)
        quotes.merge({52: _quote(52, 2.0, symbol="XRP")})
        selection = SelectionState([1])

        rows = reconciler.available_coin_rows(catalog, quotes, rates, selection, now=NOW)

        self.assertEqual([r.symbol for r in rows], ["ETH", "XRP"])
        self.assertEqual(rows[1].quote.price, 2.0)

    def test_empty_catalog(self):
        rows = reconciler.available_coin_rows(
            [], QuoteStore(), RateStore(observed_at=NOW), SelectionState([1]), now=NOW
        )

        self.assertEqual(rows, [])

    def test_polled_coin_missing_from_catalog_is_offered_after_removal(self):
        quotes = QuoteStore()
        rates = RateStore(observed_at=NOW)
        catalog = [_quote(1, 100.0, symbol="BTC")]
        quotes.replace_all(catalog)
        quotes.merge({2: _quote(2, 3.0, symbol="LTC")})
        selection = SelectionState([1, 2])
        selection.remove(2)

        rows = reconciler.available_coin_rows(catalog, quotes, rates, selection, now=NOW)

        self.assertEqual([r.coin_id for r in rows], [2])
        self.assertEqual(rows[0].quote.price, 3.0)


class CoinDetailsTest(unittest.TestCase):
    def setUp(self):
        self.quotes = QuoteStore()
        self.rates = RateStore(observed_at=NOW)
        self.selection = SelectionState([1])
        self.quotes.merge({1: _quote(1, 100.0)})

    def test_details_are_converted(self):
        self.rates.merge({FiatCurrency.SEK: (10.0, NOW)})
        self.selection.set_currency(FiatCurrency.SEK)

        details = reconciler.coin_details(1, self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual(details.currency, FiatCurrency.SEK)
        self.assertEqual(details.exchange_rate, 10.0)
        self.assertAlmostEqual(details.market_cap, 10000.0)
        self.assertAlmostEqual(details.volume_24h, 2000.0)
        self.assertAlmostEqual(details.row.quote.price, 1000.0)

    def test_untracked_coin_is_not_displayed(self):
        with self.assertRaises(CoinNotDisplayedError):
            reconciler.coin_details(2, self.quotes, self.rates, self.selection, now=NOW)

    def test_missing_rate_raises(self):
        self.selection.set_currency(FiatCurrency.NOK)

        with self.assertRaises(MissingRateError):
            reconciler.coin_details(1, self.quotes, self.rates, self.selection, now=NOW)

    def test_missing_usd_quote_raises_quote_error(self):
        self.quotes.merge({52: _quote(52, None)})
        self.selection.add(52)

        with self.assertRaises(QuoteUnavailableError) as ctx:
            reconciler.coin_details(52, self.quotes, self.rates, self.selection, now=NOW)

        self.assertEqual(str(ctx.exception), "QUOTE_UNAVAILABLE")
        self.assertNotIsInstance(ctx.exception, MissingRateError)


if __name__ == "__main__":
    unittest.main()

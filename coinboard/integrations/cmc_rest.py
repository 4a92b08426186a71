from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import requests

from coinboard.errors import FeedUnavailableError
from coinboard.schemas.quote import CoinQuote, DatedPrice, UsdQuote


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        if value is None or value == "":
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_timestamp(value: Any) -> int:
    """ISO-8601 (``2024-03-01T12:00:00.000Z``) to epoch seconds."""
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str) or not value:
        raise ValueError(f"invalid timestamp: {value!r}")
    return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())


def parse_usd_quote(raw: Any) -> UsdQuote | None:
    if not isinstance(raw, dict) or raw.get("price") is None:
        return None
    try:
        return UsdQuote(
            price=float(raw["price"]),
            volume_24h=_to_float(raw.get("volume_24h")),
            market_cap=_to_float(raw.get("market_cap")),
            last_updated=parse_timestamp(raw.get("last_updated")),
        )
    except ValueError:
        return None


def parse_coin(raw: Dict[str, Any]) -> CoinQuote:
    quote = raw.get("quote") or {}
    return CoinQuote(
        coin_id=int(raw["id"]),
        symbol=str(raw["symbol"]),
        name=str(raw["name"]),
        usd=parse_usd_quote(quote.get("USD")),
    )


class CmcRestClient:
    """CoinMarketCap coin price feed: listings, latest quotes and daily history."""

    _BASE_URL = "https://pro-api.coinmarketcap.com"

    def __init__(
        self,
        api_key: str,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout: float = 5,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url or self._BASE_URL
        self.session = session or requests
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                headers={
                    "Accepts": "application/json",
                    "X-CMC_PRO_API_KEY": self.api_key,
                },
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise FeedUnavailableError(f"CMC_REQUEST_FAILED path={path} error={exc}") from exc

        if not isinstance(payload, dict) or "data" not in payload:
            raise FeedUnavailableError(f"CMC_BAD_PAYLOAD path={path}")
        return payload["data"]

    def list_coins(self) -> List[CoinQuote]:
        """Listing rows that parse; a malformed row is logged and skipped."""
        data = self._get("/v1/cryptocurrency/listings/latest")
        if not isinstance(data, list):
            raise FeedUnavailableError("CMC_BAD_PAYLOAD listings")
        out: List[CoinQuote] = []
        for row in data:
            try:
                out.append(parse_coin(row))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                print(f"[FEED][listing_row_skip] error={exc}", flush=True)
        return out

    def poll_prices(self, coin_ids: Iterable[int]) -> Dict[int, CoinQuote]:
        ids = sorted(set(coin_ids))
        if not ids:
            return {}
        data = self._get(
            "/v2/cryptocurrency/quotes/latest",
            params={"id": ",".join(str(i) for i in ids)},
        )
        try:
            coins = [parse_coin(row) for row in data.values()]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise FeedUnavailableError(f"CMC_BAD_PAYLOAD quotes error={exc}") from exc
        return {c.coin_id: c for c in coins}

    def price_history(self, coin_id: int, days: int = 30) -> List[DatedPrice]:
        data = self._get(
            "/v2/cryptocurrency/quotes/historical",
            params={"id": coin_id, "interval": "daily", "count": days},
        )
        out: List[DatedPrice] = []
        try:
            for row in data.get("quotes", []):
                usd = (row.get("quote") or {}).get("USD")
                if not usd or usd.get("price") is None:
                    continue
                out.append(DatedPrice(ts=parse_timestamp(usd["timestamp"]), price=float(usd["price"])))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise FeedUnavailableError(f"CMC_BAD_PAYLOAD history error={exc}") from exc
        return out

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

import requests

from coinboard.errors import FeedUnavailableError
from coinboard.schemas.currency import BASE_CURRENCY, FiatCurrency


def rebase_rates(
    rates: Dict[str, Any],
    observed_at: int,
    base: FiatCurrency = BASE_CURRENCY,
) -> Dict[FiatCurrency, Tuple[float, int]]:
    """Re-express provider rates relative to ``base``, dropping unknown codes."""
    factor = rates.get(base.value)
    if not factor:
        return {}
    out: Dict[FiatCurrency, Tuple[float, int]] = {}
    for code, value in rates.items():
        try:
            currency = FiatCurrency(code)
        except ValueError:
            continue
        out[currency] = (float(value) / float(factor), observed_at)
    return out


class FixerRestClient:
    """Fixer fiat rate feed. Fixer quotes against EUR; results are rebased to USD."""

    _BASE_URL = "https://data.fixer.io/api"

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

    def poll_rates(self, currencies: Iterable[FiatCurrency]) -> Dict[FiatCurrency, Tuple[float, int]]:
        wanted = set(currencies)
        # USD is always requested since it is the rebase factor
        symbols = sorted({c.value for c in wanted} | {BASE_CURRENCY.value})
        try:
            response = self.session.get(
                f"{self.base_url}/latest",
                params={"access_key": self.api_key, "symbols": ",".join(symbols)},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise FeedUnavailableError(f"FIXER_REQUEST_FAILED error={exc}") from exc

        if not isinstance(payload, dict) or payload.get("success") is False:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise FeedUnavailableError(f"FIXER_API_ERROR error={error}")

        try:
            observed_at = int(payload["timestamp"])
            rebased = rebase_rates(payload["rates"], observed_at)
        except (KeyError, TypeError, ValueError, ZeroDivisionError) as exc:
            raise FeedUnavailableError(f"FIXER_BAD_PAYLOAD error={exc}") from exc

        if not rebased:
            raise FeedUnavailableError("FIXER_BASE_RATE_MISSING")
        return {c: v for c, v in rebased.items() if c in wanted}

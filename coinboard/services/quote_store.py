from __future__ import annotations

from typing import Iterable, Mapping

from coinboard.schemas.quote import CoinQuote


class QuoteStore:
    """Latest known quote per coin. Not locked; callers hold the session lock."""

    def __init__(self) -> None:
        self._rows: dict[int, CoinQuote] = {}

    def replace_all(self, quotes: Iterable[CoinQuote]) -> None:
        self._rows = {q.coin_id: q for q in quotes}

    def merge(self, updates: Mapping[int, CoinQuote]) -> int:
        """Merge a feed batch and return how many entries were written.

        An incoming quote without a USD price never replaces one that has it,
        so a batch that briefly omits quote data keeps the last known price.
        """
        written = 0
        for coin_id, incoming in updates.items():
            existing = self._rows.get(coin_id)
            if existing is not None and existing.usd is not None and incoming.usd is None:
                continue
            self._rows[coin_id] = incoming
            written += 1
        return written

    def get(self, coin_id: int) -> CoinQuote | None:
        return self._rows.get(coin_id)

    def list_all(self) -> list[CoinQuote]:
        return list(self._rows.values())

    def __len__(self) -> int:
        return len(self._rows)

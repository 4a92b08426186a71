from __future__ import annotations


class CoinboardError(Exception):
    """Base error; the message is an upper-case code such as ``DUPLICATE_SELECTION``."""


class FeedUnavailableError(CoinboardError):
    pass


class DuplicateSelectionError(CoinboardError):
    pass


class MissingRateError(CoinboardError):
    pass


class CoinNotDisplayedError(CoinboardError):
    pass


class QuoteUnavailableError(CoinboardError):
    pass

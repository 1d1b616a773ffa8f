from __future__ import annotations


class QuoteError(Exception):
    """Base error for a failed quote cycle. Never fatal to the poller."""

    kind = "QUOTE_ERROR"


class NetworkError(QuoteError):
    kind = "NETWORK_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RelayError(QuoteError):
    kind = "RELAY_ERROR"


class MalformedResponseError(QuoteError):
    kind = "MALFORMED_RESPONSE"


class SymbolNotFoundError(QuoteError):
    kind = "SYMBOL_NOT_FOUND"

    def __init__(self, symbol: str) -> None:
        super().__init__(f"no quote found for symbol {symbol!r}")
        self.symbol = symbol


class IncompleteDataError(QuoteError):
    kind = "INCOMPLETE_DATA"


class InvalidSymbolError(ValueError):
    kind = "INVALID_SYMBOL"

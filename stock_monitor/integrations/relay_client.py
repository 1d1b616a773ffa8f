from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import requests

from stock_monitor.config.settings import DEFAULT_CHART_URL, DEFAULT_RELAY_URL
from stock_monitor.errors import NetworkError, RelayError


class RelayQuoteClient:
    """Chart quote client routed through a CORS relay (allorigins-style envelope)."""

    def __init__(
        self,
        relay_url: str = DEFAULT_RELAY_URL,
        chart_url: str = DEFAULT_CHART_URL,
        session: Optional[Any] = None,
        timeout: float = 10.0,
    ) -> None:
        self.relay_url = relay_url
        self.chart_url = chart_url.rstrip("/")
        self.session = session or requests
        self.timeout = timeout

    def provider_url(self, symbol: str, *, interval: str = "1d", range_: str = "1d") -> str:
        return f"{self.chart_url}/{symbol}?interval={interval}&range={range_}"

    def request_url(self, symbol: str) -> str:
        return f"{self.relay_url}?url={quote(self.provider_url(symbol), safe='')}"

    def fetch(self, symbol: str) -> str:
        """Return the relayed provider body for ``symbol`` as a JSON string."""
        try:
            response = self.session.get(self.request_url(symbol), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            response = getattr(exc, "response", None)
            status_code = getattr(response, "status_code", None)
            raise NetworkError(
                f"relay request failed for {symbol}: {exc}",
                status_code=status_code if isinstance(status_code, int) else None,
            ) from exc

        try:
            envelope = response.json()
        except ValueError as exc:
            raise RelayError("relay envelope is not valid JSON") from exc
        if not isinstance(envelope, dict):
            raise RelayError("relay envelope must be an object")

        contents = envelope.get("contents")
        if not contents:
            raise RelayError("missing contents in relay envelope")
        if not isinstance(contents, str):
            raise RelayError("relay contents must be a JSON string")
        return contents

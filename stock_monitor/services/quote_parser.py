from __future__ import annotations

import json
from typing import Any

from stock_monitor.errors import IncompleteDataError, MalformedResponseError, SymbolNotFoundError
from stock_monitor.schemas.quote import RawQuotePayload


def _decode(raw: str | bytes) -> dict[str, Any]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedResponseError("provider body is not valid UTF-8") from exc
    try:
        decoded = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise MalformedResponseError("provider body is not valid JSON") from exc
    if not isinstance(decoded, dict):
        raise MalformedResponseError("provider body must be a JSON object")
    return decoded


def parse_quote_response(raw: str | bytes, symbol: str) -> RawQuotePayload:
    """Extract ``chart.result[0]`` meta and first quote sample block."""
    body = _decode(raw)

    chart = body.get("chart")
    results = chart.get("result") if isinstance(chart, dict) else None
    if not isinstance(results, list) or not results:
        raise SymbolNotFoundError(symbol)

    first = results[0] if isinstance(results[0], dict) else {}
    meta = first.get("meta")
    if not isinstance(meta, dict):
        raise IncompleteDataError("missing meta block in provider result")

    indicators = first.get("indicators")
    samples = indicators.get("quote") if isinstance(indicators, dict) else None
    sample = samples[0] if isinstance(samples, list) and samples else None
    if not isinstance(sample, dict):
        raise IncompleteDataError("missing quote block in provider result")

    return RawQuotePayload(meta=meta, quote=sample)

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable

from stock_monitor.schemas.quote import NormalizedQuote, RawQuotePayload, SessionPhase

_PRE_STATES = {"PRE", "PREPRE"}
_POST_STATES = {"POST", "POSTPOST"}
_POST_PHASES = {SessionPhase.POST, SessionPhase.POST_EXTENDED}
_PRE_PHASES = {SessionPhase.PRE, SessionPhase.PRE_EXTENDED}


def classify_session(market_state: Any) -> SessionPhase:
    """Map the provider ``marketState`` string onto a session phase."""
    state = str(market_state).strip().upper() if market_state is not None else ""
    if state in _PRE_STATES:
        return SessionPhase.PRE
    if state in _POST_STATES:
        return SessionPhase.POST
    if state == "CLOSED":
        return SessionPhase.CLOSED
    return SessionPhase.REGULAR


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_price(value: Any) -> float | None:
    # zero means "no data" for prices
    number = _to_number(value)
    if number is None or number <= 0:
        return None
    return number


def _first_present(*values: float | None) -> float | None:
    for value in values:
        if value is not None:
            return value
    return None


def _samples(quote: dict[str, Any], key: str) -> list[float]:
    raw = quote.get(key)
    if not isinstance(raw, (list, tuple)):
        return []
    return [p for p in (_to_price(v) for v in raw) if p is not None]


def _first_sample(quote: dict[str, Any], key: str) -> float | None:
    raw = quote.get(key)
    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    return _to_price(raw[0])


def _guarded_max(values: Iterable[float], default: float) -> float:
    values = list(values)
    return max(values) if values else default


def _guarded_min(values: Iterable[float], default: float) -> float:
    values = list(values)
    return min(values) if values else default


def _to_volume(value: Any) -> int:
    number = _to_number(value)
    if number is None:
        return 0
    return max(int(number), 0)


def _to_epoch(value: Any) -> float | None:
    number = _to_number(value)
    if number is None or number <= 0:
        return None
    try:
        datetime.fromtimestamp(number, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return None
    return number


def resolve_quote(
    payload: RawQuotePayload,
    requested_symbol: str,
    *,
    now: datetime | None = None,
) -> NormalizedQuote:
    """Build a NormalizedQuote from one parsed provider payload.

    Pure given ``payload``, ``requested_symbol`` and ``now``; ``now`` stamps
    ``last_refreshed_at`` and is the last resort for the quote timestamp.
    """
    meta = payload.meta
    quote = payload.quote
    captured_at = now or datetime.now(timezone.utc)
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)

    phase = classify_session(meta.get("marketState"))

    regular_price = _to_price(meta.get("regularMarketPrice"))
    post_price = _to_price(meta.get("postMarketPrice"))
    pre_price = _to_price(meta.get("preMarketPrice"))
    previous_close = _to_price(meta.get("previousClose"))

    price = _first_present(post_price, regular_price, pre_price, previous_close) or 0.0
    reference_price = previous_close if previous_close is not None else price

    if phase in _POST_PHASES and post_price is not None:
        change = post_price - reference_price
    elif phase in _PRE_PHASES and pre_price is not None:
        change = pre_price - reference_price
    else:
        change = _first_present(regular_price, price) - reference_price
    change_pct = (change / reference_price) * 100 if reference_price != 0 else 0.0

    open_price = _first_present(_first_sample(quote, "open"), regular_price, price)
    high = _guarded_max(_samples(quote, "high"), price)
    low = _guarded_min(_samples(quote, "low"), price)

    epoch = _first_present(
        _to_epoch(meta.get("postMarketTime")),
        _to_epoch(meta.get("regularMarketTime")),
        _to_epoch(meta.get("preMarketTime")),
    )
    quote_ts = (
        datetime.fromtimestamp(epoch, tz=timezone.utc)
        if epoch is not None
        else captured_at.astimezone(timezone.utc)
    )

    provider_symbol = str(meta.get("symbol") or "").strip()

    return NormalizedQuote(
        symbol=provider_symbol or requested_symbol,
        price=price,
        reference_price=reference_price,
        change=change,
        change_pct=change_pct,
        open=open_price,
        high=high,
        low=low,
        volume=_to_volume(meta.get("regularMarketVolume")),
        session_phase=phase,
        market_status=phase.label,
        quote_ts=quote_ts,
        last_refreshed_at=captured_at,
        regular_market_price=regular_price,
        post_market_price=post_price,
        pre_market_price=pre_price,
    )


def current_price_or_none(quote: NormalizedQuote | None) -> float | None:
    """Price to show in the headline tag, or None when there is no usable price."""
    if quote is None:
        return None
    return _to_price(quote.price)

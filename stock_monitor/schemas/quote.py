from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class SessionPhase(str, Enum):
    PRE = "PRE"
    PRE_EXTENDED = "PRE_EXTENDED"
    REGULAR = "REGULAR"
    POST = "POST"
    POST_EXTENDED = "POST_EXTENDED"
    CLOSED = "CLOSED"

    @property
    def label(self) -> str:
        if self in (SessionPhase.POST, SessionPhase.POST_EXTENDED):
            return "After-hours"
        if self in (SessionPhase.PRE, SessionPhase.PRE_EXTENDED):
            return "Pre-market"
        if self is SessionPhase.CLOSED:
            return "Closed"
        return "Regular session"


class RawQuotePayload(BaseModel):
    """The two provider sub-structures the resolver reads."""

    meta: dict[str, Any]
    quote: dict[str, Any]


class NormalizedQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    reference_price: float
    change: float
    change_pct: float
    open: float
    high: float
    low: float
    volume: int
    session_phase: SessionPhase
    market_status: str
    quote_ts: datetime
    last_refreshed_at: datetime
    regular_market_price: float | None = None
    post_market_price: float | None = None
    pre_market_price: float | None = None

from enum import Enum

from pydantic import BaseModel

from stock_monitor.schemas.quote import NormalizedQuote


class PollState(str, Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class PollStatus(BaseModel):
    symbol: str | None = None
    state: PollState = PollState.IDLE
    loading: bool = False
    quote: NormalizedQuote | None = None
    error_kind: str | None = None
    error_message: str | None = None
    current_price: float | None = None


class TrackSymbolRequest(BaseModel):
    symbol: str

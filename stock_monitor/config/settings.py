import os
from functools import lru_cache

from pydantic import BaseModel, field_validator

DEFAULT_RELAY_URL = "https://api.allorigins.win/get"
DEFAULT_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"


class Settings(BaseModel):
    STOCK_MONITOR_RELAY_URL: str = DEFAULT_RELAY_URL
    STOCK_MONITOR_CHART_URL: str = DEFAULT_CHART_URL
    STOCK_MONITOR_POLL_INTERVAL_SEC: float = 60.0
    STOCK_MONITOR_DEFAULT_SYMBOL: str = "RKLB"
    STOCK_MONITOR_HTTP_TIMEOUT_SEC: float = 10.0

    @field_validator("STOCK_MONITOR_POLL_INTERVAL_SEC", "STOCK_MONITOR_HTTP_TIMEOUT_SEC")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("STOCK_MONITOR_DEFAULT_SYMBOL")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        symbol = value.strip().upper()
        if not symbol:
            raise ValueError("default symbol must not be blank")
        return symbol

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            name: os.getenv(name)
            for name in cls.model_fields
        }
        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()

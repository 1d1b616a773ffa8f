from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from stock_monitor.api.routes import router
from stock_monitor.config.settings import get_settings
from stock_monitor.integrations.relay_client import RelayQuoteClient
from stock_monitor.services.quote_poller import QuotePoller


def build_poller(settings=None) -> QuotePoller:
    settings = settings or get_settings()
    client = RelayQuoteClient(
        relay_url=settings.STOCK_MONITOR_RELAY_URL,
        chart_url=settings.STOCK_MONITOR_CHART_URL,
        timeout=settings.STOCK_MONITOR_HTTP_TIMEOUT_SEC,
    )
    return QuotePoller(fetcher=client, interval_sec=settings.STOCK_MONITOR_POLL_INTERVAL_SEC)


@asynccontextmanager
async def lifespan(app: FastAPI):
    poller = app.state.quote_poller
    poller.set_tracked_symbol(app.state.get_settings().STOCK_MONITOR_DEFAULT_SYMBOL)
    print(f"[POLL][poller_start] symbol={poller.symbol} interval_sec={poller.interval_sec}", flush=True)
    try:
        yield
    finally:
        poller.close()


app = FastAPI(title="Stock Monitor", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

app.state.get_settings = get_settings
app.state.quote_poller = build_poller()

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from stock_monitor.errors import InvalidSymbolError, QuoteError
from stock_monitor.schemas.quote import NormalizedQuote
from stock_monitor.schemas.session import PollState, PollStatus
from stock_monitor.services.price_resolver import current_price_or_none, resolve_quote
from stock_monitor.services.quote_parser import parse_quote_response

DEFAULT_POLL_INTERVAL_SEC = 60.0


def normalize_symbol(symbol: Any) -> str:
    value = str(symbol or "").strip().upper()
    if not value:
        raise InvalidSymbolError("INVALID_SYMBOL")
    return value


class QuotePoller:
    """Single-symbol quote poller with a fixed-interval timer and manual refresh.

    At most one fetch-parse-resolve cycle is in flight at a time; timer ticks
    and manual refreshes that arrive meanwhile are dropped, not queued. Every
    symbol change or ``close()`` bumps a generation token, so a timer or cycle
    belonging to an older generation can never publish.
    """

    def __init__(
        self,
        *,
        fetcher,
        interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        on_quote_updated: Optional[Callable[[NormalizedQuote], None]] = None,
        on_error: Optional[Callable[[str, str], None]] = None,
        on_loading_changed: Optional[Callable[[bool], None]] = None,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
        run_blocking: Optional[Callable[..., Awaitable[Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be greater than zero")
        self.fetcher = fetcher
        self.interval_sec = interval_sec
        self._on_quote_updated = on_quote_updated
        self._on_error = on_error
        self._on_loading_changed = on_loading_changed
        self._sleep = sleep_fn
        self._run_blocking = run_blocking or asyncio.to_thread
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._symbol: str | None = None
        self._state = PollState.IDLE
        self._loading = False
        self._quote: NormalizedQuote | None = None
        self._error_kind: str | None = None
        self._error_message: str | None = None
        self._generation = 0
        self._timer_task: asyncio.Task | None = None
        self._cycle_task: asyncio.Task | None = None
        self._metrics = {
            "cycles": 0,
            "successes": 0,
            "failures": 0,
            "timer_ticks": 0,
            "skipped_in_flight": 0,
            "manual_refreshes": 0,
            "symbol_changes": 0,
        }

    @property
    def symbol(self) -> str | None:
        return self._symbol

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def quote(self) -> NormalizedQuote | None:
        return self._quote

    @property
    def in_flight(self) -> bool:
        return self._cycle_task is not None and not self._cycle_task.done()

    def _set_loading(self, loading: bool) -> None:
        if self._loading == loading:
            return
        self._loading = loading
        self._notify("on_loading_changed", self._on_loading_changed, loading)

    def _notify(self, name: str, callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as exc:
            print(f"[POLL][callback_error] callback={name} symbol={self._symbol} error={exc}", flush=True)

    def _cancel_tasks(self) -> None:
        for task in (self._timer_task, self._cycle_task):
            if task is not None and not task.done():
                task.cancel()
        self._timer_task = None
        self._cycle_task = None

    def set_tracked_symbol(self, symbol: str) -> str:
        """Track ``symbol`` from now on. Must be called on the running event loop."""
        normalized = normalize_symbol(symbol)
        loop = asyncio.get_running_loop()

        previous = self._symbol
        self._cancel_tasks()
        self._generation += 1
        generation = self._generation

        self._symbol = normalized
        self._quote = None
        self._error_kind = None
        self._error_message = None
        self._metrics["symbol_changes"] += 1
        print(
            f"[POLL][symbol_changed] previous={previous} symbol={normalized} generation={generation}",
            flush=True,
        )

        self._start_cycle(generation, source="symbol_change")
        self._timer_task = loop.create_task(self._timer_loop(generation))
        return normalized

    def request_manual_refresh(self) -> bool:
        """Start an out-of-band cycle. Returns False when nothing was started."""
        if self._symbol is None or self._timer_task is None:
            return False
        self._metrics["manual_refreshes"] += 1
        return self._start_cycle(self._generation, source="manual")

    def close(self) -> None:
        """Cancel the timer and any in-flight cycle. No tick runs afterwards."""
        self._cancel_tasks()
        self._generation += 1
        self._state = PollState.IDLE
        self._set_loading(False)
        print(f"[POLL][poller_closed] symbol={self._symbol}", flush=True)

    def _start_cycle(self, generation: int, *, source: str) -> bool:
        if self.in_flight:
            self._metrics["skipped_in_flight"] += 1
            print(f"[POLL][tick_skipped] symbol={self._symbol} source={source}", flush=True)
            return False

        symbol = self._symbol
        self._state = PollState.FETCHING
        self._set_loading(True)
        self._metrics["cycles"] += 1
        self._cycle_task = asyncio.get_running_loop().create_task(
            self._run_cycle(generation, symbol, source)
        )
        return True

    async def _timer_loop(self, generation: int) -> None:
        while True:
            await self._sleep(self.interval_sec)
            if generation != self._generation:
                return
            self._metrics["timer_ticks"] += 1
            self._start_cycle(generation, source="timer")

    async def _run_cycle(self, generation: int, symbol: str, source: str) -> None:
        print(f"[POLL][cycle_start] symbol={symbol} source={source}", flush=True)
        try:
            raw = await self._run_blocking(self.fetcher.fetch, symbol)
            payload = parse_quote_response(raw, symbol)
            quote = resolve_quote(payload, symbol, now=self._clock())
        except QuoteError as exc:
            if generation == self._generation:
                self._fail(exc.kind, str(exc))
            return
        except Exception as exc:
            if generation == self._generation:
                self._fail("UNEXPECTED", str(exc))
            return

        if generation != self._generation:
            return
        self._succeed(quote)

    def _succeed(self, quote: NormalizedQuote) -> None:
        self._quote = quote
        self._error_kind = None
        self._error_message = None
        self._state = PollState.SUCCEEDED
        self._metrics["successes"] += 1
        print(
            f"[POLL][cycle_success] symbol={quote.symbol} price={quote.price} "
            f"phase={quote.session_phase.value}",
            flush=True,
        )
        self._set_loading(False)
        self._notify("on_quote_updated", self._on_quote_updated, quote)

    def _fail(self, kind: str, message: str) -> None:
        self._error_kind = kind
        self._error_message = message
        self._state = PollState.FAILED
        self._metrics["failures"] += 1
        print(f"[POLL][cycle_error] symbol={self._symbol} kind={kind} error={message}", flush=True)
        self._set_loading(False)
        self._notify("on_error", self._on_error, kind, message)

    async def wait_for_cycle(self) -> None:
        task = self._cycle_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def status(self) -> PollStatus:
        return PollStatus(
            symbol=self._symbol,
            state=self._state,
            loading=self._loading,
            quote=self._quote,
            error_kind=self._error_kind,
            error_message=self._error_message,
            current_price=current_price_or_none(self._quote),
        )

    def metrics(self) -> dict[str, Any]:
        return {
            **self._metrics,
            "symbol": self._symbol,
            "state": self._state.value,
            "in_flight": self.in_flight,
            "generation": self._generation,
            "interval_sec": self.interval_sec,
        }

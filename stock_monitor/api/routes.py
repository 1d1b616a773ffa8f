from fastapi import APIRouter, HTTPException, Request

from stock_monitor.errors import InvalidSymbolError
from stock_monitor.schemas.session import PollStatus, TrackSymbolRequest

router = APIRouter()


@router.get('/quote', response_model=PollStatus)
async def get_quote(request: Request):
    return request.app.state.quote_poller.status()


@router.put('/symbol', response_model=PollStatus)
async def set_symbol(req: TrackSymbolRequest, request: Request):
    poller = request.app.state.quote_poller
    try:
        poller.set_tracked_symbol(req.symbol)
    except InvalidSymbolError as exc:
        raise HTTPException(status_code=400, detail='INVALID_SYMBOL') from exc
    return poller.status()


@router.post('/refresh')
async def refresh(request: Request):
    poller = request.app.state.quote_poller
    return {'accepted': poller.request_manual_refresh(), 'symbol': poller.symbol}


@router.get('/metrics/poll')
async def poll_metrics(request: Request):
    return request.app.state.quote_poller.metrics()

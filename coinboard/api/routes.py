from fastapi import APIRouter, HTTPException, Query, Request

from coinboard.errors import (
    CoinNotDisplayedError,
    DuplicateSelectionError,
    MissingRateError,
    QuoteUnavailableError,
)
from coinboard.schemas.selection import (
    CurrencyChangeRequest,
    RemoveCoinResponse,
    SelectionResponse,
)
from coinboard.services.watchlist_session import WatchlistSession

router = APIRouter()


def _session(request: Request) -> WatchlistSession:
    return request.app.state.session


def _selection(session: WatchlistSession) -> SelectionResponse:
    return SelectionResponse(tracked_coins=session.tracked_coins, currency=session.active_currency)


@router.get('/view')
def get_view(request: Request):
    return _session(request).view_state().model_dump(mode='json')


@router.get('/coins/available')
def get_available_coins(request: Request):
    return [row.model_dump(mode='json') for row in _session(request).available_coins()]


@router.post('/selection/coins/{coin_id}', response_model=SelectionResponse)
def add_coin(coin_id: int, request: Request):
    session = _session(request)
    try:
        session.add_coin(coin_id)
    except DuplicateSelectionError as exc:
        raise HTTPException(status_code=409, detail='DUPLICATE_SELECTION') from exc
    return _selection(session)


@router.delete('/selection/coins/{coin_id}', response_model=RemoveCoinResponse)
def remove_coin(coin_id: int, request: Request):
    session = _session(request)
    removed = session.remove_coin(coin_id)
    return RemoveCoinResponse(
        removed=removed,
        tracked_coins=session.tracked_coins,
        currency=session.active_currency,
    )


@router.put('/selection/currency', response_model=SelectionResponse)
def change_currency(req: CurrencyChangeRequest, request: Request):
    session = _session(request)
    session.set_currency(req.currency)
    return _selection(session)


@router.get('/coins/{coin_id}/details')
def get_coin_details(coin_id: int, request: Request):
    try:
        details = _session(request).coin_details(coin_id)
    except CoinNotDisplayedError as exc:
        raise HTTPException(status_code=404, detail='COIN_NOT_DISPLAYED') from exc
    except (MissingRateError, QuoteUnavailableError) as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return details.model_dump(mode='json')


@router.get('/coins/{coin_id}/history')
def get_price_history(coin_id: int, request: Request, days: int = Query(default=30, ge=1, le=365)):
    session = _session(request)
    history = session.price_history(coin_id, days)
    if history is None:
        raise HTTPException(status_code=503, detail='PRICE_HISTORY_UNAVAILABLE')
    return {
        'coin_id': coin_id,
        'currency': session.active_currency.value,
        'points': [p.model_dump() for p in history],
    }


@router.get('/metrics/feed')
def feed_metrics(request: Request):
    return _session(request).metrics()

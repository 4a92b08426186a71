from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from coinboard.api.routes import router
from coinboard.config.settings import Settings, get_settings
from coinboard.integrations.cmc_rest import CmcRestClient
from coinboard.integrations.demo_feeds import DemoCoinFeed, DemoRateFeed
from coinboard.integrations.fixer_rest import FixerRestClient
from coinboard.services.watchlist_session import WatchlistSession


def build_session(settings: Settings) -> WatchlistSession:
    if settings.COINBOARD_FEED_MODE == "live":
        coin_feed = CmcRestClient(api_key=settings.COINBOARD_CMC_API_KEY)
        rate_feed = FixerRestClient(api_key=settings.COINBOARD_FIXER_API_KEY)
    else:
        coin_feed = DemoCoinFeed()
        rate_feed = DemoRateFeed()

    return WatchlistSession(
        coin_feed=coin_feed,
        rate_feed=rate_feed,
        coins=settings.COINBOARD_COINS,
        currencies=settings.COINBOARD_CURRENCIES,
        price_interval_sec=settings.COINBOARD_PRICE_POLL_SEC,
        rate_interval_sec=settings.COINBOARD_RATE_POLL_SEC,
        freshness_offset_min=settings.COINBOARD_FRESHNESS_OFFSET_MIN,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    session = app.state.session
    print(f"[APP][session_start] mode={app.state.get_settings().COINBOARD_FEED_MODE}", flush=True)
    session.start()
    try:
        yield
    finally:
        session.stop()
        print("[APP][session_stop]", flush=True)


app = FastAPI(title="Coinboard", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

app.state.get_settings = get_settings
app.state.session = build_session(get_settings())

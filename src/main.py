"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.iv_admin.api.router import router as admin_router
from src.iv_common.database import async_session_factory, engine
from src.iv_common.errors import AppError
from src.iv_common.redis_client import close_redis, ping_redis
from src.iv_common.response import error_response
from src.iv_gateway.api.router import router as auth_router
from src.iv_gateway.middleware.request_log import RequestLogMiddleware
from src.iv_ledger.api.router import router as ledger_router
from src.iv_order.api.router import router as order_router
from src.iv_order.engine.engine import get_order_engine
from src.iv_portfolio.api.router import router as portfolio_router
from src.iv_pricing.api.router import router as pricing_router
from src.iv_pricing.application.ticker import PriceTicker
from src.iv_realtime.api.router import router as realtime_router
from src.iv_realtime.bus import get_event_bus
from src.iv_realtime.redis_bridge import redis_sink
from src.iv_scenario.api.router import router as scenario_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("iv")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, optional Redis fan-out and ticker. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    bus = get_event_bus()
    if settings.REALTIME_REDIS_ENABLED:
        await ping_redis()
        bus.add_sink(redis_sink)
        logger.info("Realtime events mirrored to Redis")

    ticker: PriceTicker | None = None
    if settings.PRICE_TICK_INTERVAL_SECONDS > 0:
        ticker = PriceTicker(
            settings.PRICE_TICK_INTERVAL_SECONDS,
            async_session_factory,
            after_tick=get_order_engine().reevaluate_pending,
        )
        ticker.start()
    yield
    if ticker is not None:
        await ticker.stop()
    if settings.REALTIME_REDIS_ENABLED:
        bus.remove_sink(redis_sink)
        await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(scenario_router, prefix="/api/v1")
app.include_router(pricing_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(portfolio_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(realtime_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}

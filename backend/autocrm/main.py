import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from autocrm.api.auth import router as auth_router
from autocrm.api.masters import router as masters_router
from autocrm.api.orders import router as orders_router
from autocrm.api.bonuses import router as bonuses_router
from autocrm.api.settings import router as settings_router
from autocrm.api.stats import router as stats_router
from autocrm.core.config import settings
from autocrm.core.database import engine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    logger.info("AutoCRM API starting")
    yield
    await engine.dispose()
    logger.info("AutoCRM API stopped")


app = FastAPI(title="AutoCRM API", version="0.1.0", lifespan=lifespan)

cors_origins = settings.cors_origins.split(",")


class TimingMiddleware:
    """Plain ASGI middleware that logs every request with its status and duration."""
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        t0 = time.perf_counter()
        status_code = 0

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        await self.app(scope, receive, send_wrapper)
        ms = int((time.perf_counter() - t0) * 1000)
        method = scope.get("method", "?")
        path = scope.get("path", "?")
        qs = scope.get("query_string", b"").decode()
        qs_str = f"?{qs}" if qs else ""
        logger.info(f"{method} {path}{qs_str} -> {status_code} in {ms}ms")


app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth_router)
app.include_router(masters_router)
app.include_router(orders_router)
app.include_router(bonuses_router)
app.include_router(settings_router)
app.include_router(stats_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}

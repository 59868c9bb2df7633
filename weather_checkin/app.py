from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_settings
from .constants import SERVICE_VERSION
from .error_handlers import register_error_handlers
from .observability import setup_logging
from .propagation import build_channel
from .routers import health as health_router
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .store import RoomStore
from .sweeper import RoomSweeper

logger = logging.getLogger(__name__)


# -----------------------------
# Lifespan
# -----------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)
    app.state.store.init()
    app.state.sweeper.start()
    logger.info(f"Weather check-in started ({app.state.channel.mode} propagation)")
    yield
    await app.state.sweeper.stop()
    await app.state.channel.close()
    app.state.store.dispose()
    logger.info("Weather check-in shutting down")


# Custom StaticFiles variant that disables caching for the SPA assets.
class NoCacheStaticFiles(StaticFiles):
    async def get_response(self, path: str, scope):  # type: ignore[override]
        response = await super().get_response(path, scope)
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Weather Check-in", version=SERVICE_VERSION, lifespan=lifespan)

    # One store and one channel per application, handed to routes via dependencies.
    store = RoomStore()
    app.state.settings = settings
    app.state.store = store
    app.state.channel = build_channel(settings)
    app.state.sweeper = RoomSweeper(
        store,
        horizon_seconds=settings.room_ttl_hours * 3600,
        interval=settings.sweep_interval_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health_router.router)
    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)

    # Mounted last so API routes take precedence over the SPA fallback.
    if settings.static_dir and os.path.isdir(settings.static_dir):
        app.mount("/", NoCacheStaticFiles(directory=settings.static_dir, html=True), name="frontend")

    return app


app = create_app()

__all__ = ["app", "create_app", "lifespan"]

"""FastAPI app factory + lifespan (startup/shutdown)."""

import asyncio
import time
from contextlib import asynccontextmanager

import config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracekit.events import StoreLogListener
from tracekit.logging import get_logger
from tracekit.store import SessionStore

from .streaming import StoreEventChannel
from . import routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # Startup
    store = SessionStore(max_sessions=config.MAX_SESSIONS)
    store.subscribe(StoreLogListener(get_logger()))
    channel = StoreEventChannel(
        store, asyncio.get_running_loop(), queue_size=config.STREAM_QUEUE_SIZE
    )
    routes.store = store
    routes.channel = channel
    routes._start_time = time.time()
    app.state.store = store

    yield

    # Shutdown
    channel.close()
    store.close()


def create_app() -> FastAPI:
    """Build and return the configured FastAPI application."""
    app = FastAPI(
        title="TraceLens API",
        description="Live trace sessions, step outlines and graph views",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes.router)
    return app

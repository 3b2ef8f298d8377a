from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from watchparty.api.broadcast import router as broadcast_router
from watchparty.api.room import router as room_router
from watchparty.core.config import Settings, get_settings
from watchparty.state.clients import ClientRegistry
from watchparty.state.election import Election
from watchparty.state.room_manager import RoomStateStore
from watchparty.ws.manager import ConnectionManager
from watchparty.ws.router import MessageRouter
from watchparty.ws.routes import router as ws_router

logger = logging.getLogger("watchparty")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def _tick_forever(room: MessageRouter, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        await room.tick(interval_s)


@asynccontextmanager
async def lifespan(app: FastAPI):
    interval = app.state.settings.tick_interval_s
    ticker = asyncio.create_task(_tick_forever(app.state.router, interval))
    logger.info(f"[room] ticker started interval={interval}s")
    try:
        yield
    finally:
        ticker.cancel()
        with suppress(asyncio.CancelledError):
            await ticker


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="Watch Party Sync", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.clients = ClientRegistry(nickname_prefix=settings.default_nickname_prefix)
    app.state.room = RoomStateStore(app.state.clients)
    app.state.election = Election(app.state.clients)
    app.state.ws_manager = ConnectionManager(app.state.clients)
    app.state.router = MessageRouter(
        app.state.clients, app.state.room, app.state.election, app.state.ws_manager
    )
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(room_router)
    app.include_router(broadcast_router)
    app.include_router(ws_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "watchparty.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

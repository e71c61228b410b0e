from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from okey.messaging.hub import ConnectionHub
from okey.messaging.router import MessageRouter
from okey.server.settings import OkeyServerSettings
from okey.server.websocket import websocket_endpoint
from okey.session.registry import RoomRegistry
from okey.session.views import room_summaries
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.websockets import WebSocket


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    registry: RoomRegistry = request.app.state.registry
    hub: ConnectionHub = request.app.state.hub
    settings: OkeyServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "rooms": registry.room_count,
            "open_rooms": len(registry.list_rooms()),
            "connections": hub.connection_count,
            "pending_bot_turns": registry.bot_scheduler.pending_count,
            "max_rooms": settings.max_rooms,
        },
    )


async def list_rooms(request: Request) -> JSONResponse:
    registry: RoomRegistry = request.app.state.registry
    summaries = room_summaries(registry.list_rooms())
    return JSONResponse({"rooms": [s.model_dump(mode="json") for s in summaries]})


def create_app(
    settings: OkeyServerSettings | None = None,
    registry: RoomRegistry | None = None,
    hub: ConnectionHub | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = OkeyServerSettings()

    if registry is None:
        registry = RoomRegistry(settings=settings.to_game_settings())

    if hub is None:
        hub = ConnectionHub()

    if message_router is None:
        message_router = MessageRouter(registry, hub, max_rooms=settings.max_rooms)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/rooms", list_rooms, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        pump = asyncio.create_task(message_router.run_event_pump(), name="bot-event-pump")
        try:
            yield
        finally:
            registry.shutdown()
            pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pump
            logger.info("okey server stopped")

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.hub = hub
    app.state.message_router = message_router

    logger.info("okey server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = OkeyServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)

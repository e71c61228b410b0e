from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from okey.messaging.encoder import DecodeError, decode
from okey.messaging.protocol import ConnectionProtocol
from okey.messaging.types import ErrorMessage, SessionErrorCode
from okey.server.rate_limit import TokenBucket

logger = structlog.get_logger()

if TYPE_CHECKING:
    from okey.messaging.router import MessageRouter

# A seat acts at most twice per turn; anything above this is a misbehaving client.
MESSAGES_PER_SECOND = 10.0
MESSAGE_BURST = 20

# Consecutive undecodable frames tolerated before the socket is closed.
MAX_DECODE_ERRORS = 5
CLOSE_CODE_DECODE_ERRORS = 4004


class WebSocketConnection(ConnectionProtocol):
    """A Starlette WebSocket seen as a room server connection."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or uuid4().hex

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect):
            await self._websocket.close(code=code, reason=reason)


class _RequestReader:
    """Decode inbound frames, closing the socket after repeated garbage."""

    def __init__(self, connection: WebSocketConnection) -> None:
        self._connection = connection
        self._strikes = 0

    async def next_request(self) -> dict[str, Any] | None:
        """Read frames until one decodes. None once the socket was closed for errors."""
        while True:
            frame = await self._connection.receive_bytes()
            try:
                request = decode(frame)
            except DecodeError as e:
                self._strikes += 1
                logger.warning("undecodable frame", error=str(e), strikes=self._strikes)
                await self._connection.send_message(
                    ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)),
                )
                if self._strikes >= MAX_DECODE_ERRORS:
                    logger.info("closing connection after repeated undecodable frames")
                    await self._connection.close(code=CLOSE_CODE_DECODE_ERRORS, reason="too_many_decode_errors")
                    return None
                continue
            self._strikes = 0
            return request


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    """Serve one client: register, relay requests to the router, leave on disconnect."""
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    logger.info("client connected")
    await router.handle_connect(connection)

    bucket = TokenBucket(rate=MESSAGES_PER_SECOND, burst=MESSAGE_BURST)
    reader = _RequestReader(connection)

    try:
        while (request := await reader.next_request()) is not None:
            if bucket.consume():
                await router.handle_message(connection, request)
            else:
                logger.debug("request dropped by rate limit", request_type=request.get("type"))
                await connection.send_message(
                    ErrorMessage(code=SessionErrorCode.RATE_LIMITED, message="Too many messages"),
                )
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("client disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()

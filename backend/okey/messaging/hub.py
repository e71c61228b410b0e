"""Live connections and the broadcast scopes built on them."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pydantic import BaseModel

    from okey.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


def _payload(message: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(message, dict):
        return message
    return message.model_dump(mode="json")


class ConnectionHub:
    """Map connection ids (which double as human player ids) to connections.

    Sends never raise on a connection that went away mid-broadcast; the
    disconnect path cleans it up.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection
        logger.debug("connection registered", connection_id=connection.connection_id)

    def unregister(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        logger.debug("connection unregistered", connection_id=connection.connection_id)

    def get(self, connection_id: str) -> ConnectionProtocol | None:
        return self._connections.get(connection_id)

    async def send_to(self, connection_id: str, message: BaseModel | dict[str, Any]) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(_payload(message))

    async def broadcast(
        self,
        connection_ids: Iterable[str],
        message: BaseModel | dict[str, Any],
        exclude_connection_id: str | None = None,
    ) -> None:
        """Send to every listed connection that is still registered."""
        payload = _payload(message)
        for connection_id in list(connection_ids):
            if connection_id == exclude_connection_id:
                continue
            await self.send_to(connection_id, payload)

    async def broadcast_all(self, message: BaseModel | dict[str, Any]) -> None:
        # Snapshot via list(): a disconnect may unregister while we await a send.
        await self.broadcast(list(self._connections), message)

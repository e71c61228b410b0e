"""Transport-neutral view of one client connection."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from okey.messaging.encoder import encode


class ConnectionProtocol(ABC):
    """
    A client connection as the router and hub see it.

    Implementations only move bytes; framing lives in send_message. The
    connection id is also the player id of the human seated through it.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str: ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, message: BaseModel | dict[str, Any]) -> None:
        await self.send_bytes(encode(message))

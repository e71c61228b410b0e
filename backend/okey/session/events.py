"""Outbound room events and the channel that fans them out.

Bot actions happen on timers, outside any client request, so they are
published as typed events instead of being returned to a caller. The
transport subscribes once and rebroadcasts; tests subscribe to observe the
same stream.
"""

import asyncio
from enum import StrEnum
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict

from okey.logic.enums import DrawSource
from okey.logic.tiles import Tile

logger = structlog.get_logger()


class RoomEventType(StrEnum):
    BOT_DRAW = "bot_draw"
    BOT_MOVE = "bot_move"


class BotDrawEvent(BaseModel):
    """A bot took a tile. The tile itself stays private."""

    model_config = ConfigDict(frozen=True)

    type: Literal[RoomEventType.BOT_DRAW] = RoomEventType.BOT_DRAW
    room_id: str
    player_id: str
    source: DrawSource


class BotMoveEvent(BaseModel):
    """A bot discarded and passed the turn."""

    model_config = ConfigDict(frozen=True)

    type: Literal[RoomEventType.BOT_MOVE] = RoomEventType.BOT_MOVE
    room_id: str
    player_id: str
    drawn_tile: Tile | None
    discarded_tile: Tile
    next_turn: int


RoomEvent = BotDrawEvent | BotMoveEvent


class EventChannel:
    """Fan-out channel: every subscriber gets its own queue of every event."""

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[RoomEvent]] = []

    def subscribe(self) -> asyncio.Queue[RoomEvent]:
        queue: asyncio.Queue[RoomEvent] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[RoomEvent]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: RoomEvent) -> None:
        if not self._subscribers:
            logger.debug("event dropped, no subscribers", event_type=event.type, room_id=event.room_id)
        for queue in self._subscribers:
            queue.put_nowait(event)

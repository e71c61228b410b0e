"""
Deferred bot turns.

A bot's turn runs in two stages, each after a delay: draw, then discard. At
most one bot turn is pending per room; scheduling a new one replaces the
old. Each stage re-reads the room through the registry before acting, so a
turn that outlived its room, its game or its seat does nothing.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from okey.logic.exceptions import RoomError
from okey.session.events import BotDrawEvent, BotMoveEvent

if TYPE_CHECKING:
    from okey.logic.settings import GameSettings
    from okey.session.events import EventChannel
    from okey.session.registry import RoomRegistry

logger = structlog.get_logger()


class BotTurnScheduler:
    """Track the pending bot turn task of every room."""

    def __init__(self, registry: RoomRegistry, events: EventChannel, settings: GameSettings) -> None:
        self._registry = registry
        self._events = events
        self._draw_delay = settings.bot_draw_delay
        self._discard_delay = settings.bot_discard_delay
        self._tasks: dict[str, tuple[str, asyncio.Task[None]]] = {}

    def pending_bot(self, room_id: str) -> str | None:
        """Bot id whose turn is pending in the room, if any."""
        entry = self._tasks.get(room_id)
        return entry[0] if entry is not None else None

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def schedule(self, room_id: str, bot_id: str) -> None:
        """Start the bot's turn after the draw delay, replacing any pending turn.

        Must be called from a running event loop. When called from inside the
        pending task itself (a bot discard handing the turn to another bot),
        that task is left to finish on its own.
        """
        self.cancel_room(room_id)
        task = asyncio.create_task(self._run_turn(room_id, bot_id), name=f"bot-turn-{room_id}")
        self._tasks[room_id] = (bot_id, task)
        task.add_done_callback(lambda t, rid=room_id: self._forget(rid, t))
        logger.debug("bot turn scheduled", room_id=room_id, player_id=bot_id)

    def cancel_room(self, room_id: str) -> None:
        entry = self._tasks.pop(room_id, None)
        if entry is None:
            return
        _, task = entry
        if task is not asyncio.current_task() and not task.done():
            task.cancel()
            logger.debug("bot turn cancelled", room_id=room_id, player_id=entry[0])

    def cancel_all(self) -> None:
        for room_id in list(self._tasks):
            self.cancel_room(room_id)

    def _forget(self, room_id: str, task: asyncio.Task[None]) -> None:
        entry = self._tasks.get(room_id)
        if entry is not None and entry[1] is task:
            del self._tasks[room_id]

    async def _run_turn(self, room_id: str, bot_id: str) -> None:
        try:
            await asyncio.sleep(self._draw_delay)
            drawn = self._registry.apply_bot_draw(room_id, bot_id)
            if drawn is None:
                return
            if drawn.source is not None:
                self._events.publish(BotDrawEvent(room_id=room_id, player_id=bot_id, source=drawn.source))

            await asyncio.sleep(self._discard_delay)
            move = self._registry.apply_bot_discard(room_id, bot_id)
            if move is None:
                return
            self._events.publish(
                BotMoveEvent(
                    room_id=room_id,
                    player_id=bot_id,
                    drawn_tile=drawn.tile,
                    discarded_tile=move.discarded_tile,
                    next_turn=move.next_turn,
                )
            )
        except asyncio.CancelledError:
            pass
        except (RoomError, RuntimeError, ValueError):  # fmt: skip
            logger.exception("bot turn failed", room_id=room_id, player_id=bot_id)

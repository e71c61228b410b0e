from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from okey.logic.enums import DrawSource
from okey.logic.exceptions import NotInRoomError, RoomError, RoomNotFoundError
from okey.messaging.types import (
    AddBotMessage,
    CreateRoomMessage,
    DiscardAcceptedMessage,
    DiscardTileMessage,
    DrawTileMessage,
    ErrorMessage,
    GameStartedMessage,
    GetRoomsMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PingMessage,
    PlayerDiscardedMessage,
    PlayerDrewMessage,
    PongMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    RoomLeftMessage,
    RoomsListMessage,
    RoomsListUpdateMessage,
    RoomUpdateMessage,
    SessionErrorCode,
    StartGameMessage,
    TileDrawnMessage,
    parse_client_message,
)
from okey.session.events import BotDrawEvent, BotMoveEvent
from okey.session.views import game_started_view, room_summaries, room_view

if TYPE_CHECKING:
    from okey.messaging.hub import ConnectionHub
    from okey.messaging.protocol import ConnectionProtocol
    from okey.messaging.types import ClientMessage
    from okey.session.events import RoomEvent
    from okey.session.models import Room
    from okey.session.registry import RoomRegistry

logger = structlog.get_logger()


class MessageRouter:
    """
    Routes incoming messages to the room registry and fans results out.

    Holds no game rules: it marshals requests, turns RoomError into error
    messages and picks the broadcast scope (caller, room, everyone). It can
    be tested without real WebSocket connections.
    """

    def __init__(self, registry: RoomRegistry, hub: ConnectionHub, *, max_rooms: int | None = None) -> None:
        self._registry = registry
        self._hub = hub
        self._max_rooms = max_rooms

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._hub.register(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._leave(connection.connection_id)
        self._hub.unregister(connection)

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)))
            return

        try:
            await self._dispatch(connection, message)
        except RoomError as e:
            logger.info(
                "room action rejected",
                connection_id=connection.connection_id,
                action=message.type,
                code=e.code,
            )
            await connection.send_message(ErrorMessage(code=e.code, message=e.message))
        except Exception:
            logger.exception("room action failed", connection_id=connection.connection_id, action=message.type)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.ACTION_FAILED, message="Action failed"),
            )

    async def _dispatch(self, connection: ConnectionProtocol, message: ClientMessage) -> None:
        if isinstance(message, CreateRoomMessage):
            await self._handle_create_room(connection, message)
        elif isinstance(message, GetRoomsMessage):
            await connection.send_message(RoomsListMessage(rooms=room_summaries(self._registry.list_rooms())))
        elif isinstance(message, JoinRoomMessage):
            await self._handle_join_room(connection, message)
        elif isinstance(message, StartGameMessage):
            await self._handle_start_game(connection, message)
        elif isinstance(message, AddBotMessage):
            await self._handle_add_bot(connection, message)
        elif isinstance(message, DrawTileMessage):
            await self._handle_draw_tile(connection, message)
        elif isinstance(message, DiscardTileMessage):
            await self._handle_discard_tile(connection, message)
        elif isinstance(message, LeaveRoomMessage):
            room_id = await self._leave(connection.connection_id)
            await connection.send_message(RoomLeftMessage(room_id=room_id))
        elif isinstance(message, PingMessage):
            await connection.send_message(PongMessage())

    async def _handle_create_room(self, connection: ConnectionProtocol, message: CreateRoomMessage) -> None:
        if self._max_rooms is not None and self._registry.room_count >= self._max_rooms:
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.SERVER_FULL, message="Server at capacity"),
            )
            return
        room = self._registry.create_room(connection.connection_id, message.player_name)
        await connection.send_message(RoomCreatedMessage(room=room_view(room)))
        await self._broadcast_rooms_list()

    async def _handle_join_room(self, connection: ConnectionProtocol, message: JoinRoomMessage) -> None:
        room = self._registry.join_room(message.room_id, connection.connection_id, message.player_name)
        await connection.send_message(RoomJoinedMessage(room=room_view(room)))
        await self._broadcast_room_update(room)
        await self._broadcast_rooms_list()

    async def _handle_start_game(self, connection: ConnectionProtocol, message: StartGameMessage) -> None:
        self._require_seated(connection, message.room_id)
        room = self._registry.start_game(message.room_id)
        for player_id in room.human_ids:
            view = game_started_view(room, player_id)
            await self._hub.send_to(player_id, GameStartedMessage(**view.model_dump()))
        await self._broadcast_room_update(room)
        await self._broadcast_rooms_list()

    async def _handle_add_bot(self, connection: ConnectionProtocol, message: AddBotMessage) -> None:
        self._require_seated(connection, message.room_id)
        room = self._registry.add_bot(message.room_id)
        await self._broadcast_room_update(room)
        await self._broadcast_rooms_list()

    async def _handle_draw_tile(self, connection: ConnectionProtocol, message: DrawTileMessage) -> None:
        tile = self._registry.draw_tile(message.room_id, connection.connection_id, message.source)
        source = DrawSource(message.source)
        await connection.send_message(TileDrawnMessage(tile=tile, source=source))
        room = self._registry.get_room(message.room_id)
        if room is not None:
            await self._hub.broadcast(
                room.human_ids,
                PlayerDrewMessage(player_id=connection.connection_id, source=source),
                exclude_connection_id=connection.connection_id,
            )

    async def _handle_discard_tile(self, connection: ConnectionProtocol, message: DiscardTileMessage) -> None:
        tile = self._registry.discard_tile(message.room_id, connection.connection_id, message.hand_index)
        await connection.send_message(DiscardAcceptedMessage(tile=tile))
        room = self._registry.get_room(message.room_id)
        if room is not None:
            await self._hub.broadcast(
                room.human_ids,
                PlayerDiscardedMessage(player_id=connection.connection_id, tile=tile, next_turn=room.turn_index),
            )

    async def _leave(self, player_id: str) -> str | None:
        """Vacate the player's seat, notify whoever remains. Returns the room left, if any."""
        result = self._registry.leave(player_id)
        if result.room_id is None:
            return None
        if not result.room_became_empty:
            room = self._registry.get_room(result.room_id)
            if room is not None:
                await self._broadcast_room_update(room)
        await self._broadcast_rooms_list()
        return result.room_id

    def _require_seated(self, connection: ConnectionProtocol, code: str) -> None:
        room = self._registry.get_room(code)
        if room is None:
            raise RoomNotFoundError("Room not found")
        if room.seat_of(connection.connection_id) is None:
            raise NotInRoomError("Not seated in this room")

    async def _broadcast_room_update(self, room: Room) -> None:
        await self._hub.broadcast(room.human_ids, RoomUpdateMessage(room=room_view(room)))

    async def _broadcast_rooms_list(self) -> None:
        await self._hub.broadcast_all(RoomsListUpdateMessage(rooms=room_summaries(self._registry.list_rooms())))

    # --- Bot events ---

    async def run_event_pump(self) -> None:
        """Rebroadcast bot events to their rooms until cancelled."""
        queue = self._registry.events.subscribe()
        try:
            while True:
                event = await queue.get()
                try:
                    await self.dispatch_event(event)
                except Exception:
                    logger.exception("bot event broadcast failed", room_id=event.room_id, event_type=event.type)
        finally:
            self._registry.events.unsubscribe(queue)

    async def dispatch_event(self, event: RoomEvent) -> None:
        room = self._registry.get_room(event.room_id)
        if room is None:
            return
        if isinstance(event, BotDrawEvent):
            await self._hub.broadcast(room.human_ids, PlayerDrewMessage(player_id=event.player_id, source=event.source))
        elif isinstance(event, BotMoveEvent):
            await self._hub.broadcast(
                room.human_ids,
                PlayerDiscardedMessage(
                    player_id=event.player_id,
                    tile=event.discarded_tile,
                    next_turn=event.next_turn,
                ),
            )

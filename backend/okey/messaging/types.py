from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from okey.logic.enums import DrawSource, ErrorCode
from okey.logic.tiles import Tile
from okey.session.views import GameStartedView, RoomSummary, RoomView

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_ROOM_ID_FIELD = Field(min_length=1, max_length=16, pattern=r"^[a-zA-Z0-9]+$")


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    GET_ROOMS = "get_rooms"
    JOIN_ROOM = "join_room"
    START_GAME = "start_game"
    ADD_BOT = "add_bot"
    DRAW_TILE = "draw_tile"
    DISCARD_TILE = "discard_tile"
    LEAVE_ROOM = "leave_room"
    PING = "ping"


class ServerMessageType(StrEnum):
    ROOM_CREATED = "room_created"
    ROOMS_LIST = "rooms_list"
    ROOMS_LIST_UPDATE = "rooms_list_update"
    ROOM_JOINED = "room_joined"
    ROOM_UPDATE = "room_update"
    ROOM_LEFT = "room_left"
    GAME_STARTED = "game_started"
    TILE_DRAWN = "tile_drawn"
    PLAYER_DREW = "player_drew"
    DISCARD_ACCEPTED = "discard_accepted"
    PLAYER_DISCARDED = "player_discarded"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    """Transport-level error codes. Room rule violations use ErrorCode."""

    INVALID_MESSAGE = "invalid_message"
    ACTION_FAILED = "action_failed"
    RATE_LIMITED = "rate_limited"
    SERVER_FULL = "server_full"


def _validate_player_name(v: str) -> str:
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in v):
        raise ValueError("player_name must not contain control characters")
    stripped = v.strip()
    if not stripped:
        raise ValueError("player_name must not be blank")
    return stripped


class CreateRoomMessage(BaseModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    player_name: str = Field(min_length=1, max_length=50)

    @field_validator("player_name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return _validate_player_name(v)


class GetRoomsMessage(BaseModel):
    type: Literal[ClientMessageType.GET_ROOMS] = ClientMessageType.GET_ROOMS


class JoinRoomMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = _ROOM_ID_FIELD
    player_name: str = Field(min_length=1, max_length=50)

    @field_validator("player_name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return _validate_player_name(v)


class StartGameMessage(BaseModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME
    room_id: str = _ROOM_ID_FIELD


class AddBotMessage(BaseModel):
    type: Literal[ClientMessageType.ADD_BOT] = ClientMessageType.ADD_BOT
    room_id: str = _ROOM_ID_FIELD


class DrawTileMessage(BaseModel):
    """source is checked by the registry so a bad value reports invalid_source."""

    type: Literal[ClientMessageType.DRAW_TILE] = ClientMessageType.DRAW_TILE
    room_id: str = _ROOM_ID_FIELD
    source: str = Field(max_length=16)


class DiscardTileMessage(BaseModel):
    type: Literal[ClientMessageType.DISCARD_TILE] = ClientMessageType.DISCARD_TILE
    room_id: str = _ROOM_ID_FIELD
    hand_index: int = Field(strict=True)


class LeaveRoomMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    CreateRoomMessage
    | GetRoomsMessage
    | JoinRoomMessage
    | StartGameMessage
    | AddBotMessage
    | DrawTileMessage
    | DiscardTileMessage
    | LeaveRoomMessage
    | PingMessage,
    Field(discriminator="type"),
]


class RoomCreatedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED
    room: RoomView


class RoomsListMessage(BaseModel):
    type: Literal[ServerMessageType.ROOMS_LIST] = ServerMessageType.ROOMS_LIST
    rooms: list[RoomSummary]


class RoomsListUpdateMessage(BaseModel):
    type: Literal[ServerMessageType.ROOMS_LIST_UPDATE] = ServerMessageType.ROOMS_LIST_UPDATE
    rooms: list[RoomSummary]


class RoomJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_JOINED] = ServerMessageType.ROOM_JOINED
    room: RoomView


class RoomUpdateMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_UPDATE] = ServerMessageType.ROOM_UPDATE
    room: RoomView


class RoomLeftMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_LEFT] = ServerMessageType.ROOM_LEFT
    room_id: str | None


class GameStartedMessage(GameStartedView):
    """Private deal sent to each human seat."""

    type: Literal[ServerMessageType.GAME_STARTED] = ServerMessageType.GAME_STARTED


class TileDrawnMessage(BaseModel):
    type: Literal[ServerMessageType.TILE_DRAWN] = ServerMessageType.TILE_DRAWN
    tile: Tile
    source: DrawSource


class PlayerDrewMessage(BaseModel):
    """Someone else drew; the tile stays hidden."""

    type: Literal[ServerMessageType.PLAYER_DREW] = ServerMessageType.PLAYER_DREW
    player_id: str
    source: DrawSource


class DiscardAcceptedMessage(BaseModel):
    type: Literal[ServerMessageType.DISCARD_ACCEPTED] = ServerMessageType.DISCARD_ACCEPTED
    tile: Tile


class PlayerDiscardedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_DISCARDED] = ServerMessageType.PLAYER_DISCARDED
    player_id: str
    tile: Tile
    next_turn: int


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: ErrorCode | SessionErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage by its type field."""
    return _client_message_adapter.validate_python(data)

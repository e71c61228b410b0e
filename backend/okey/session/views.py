"""
Pydantic snapshots of rooms as clients may see them.

Hands are private: public views carry only hand sizes and the draw pile
size. Discard piles, the indicator and the okey tile are public.
"""

from pydantic import BaseModel

from okey.logic.enums import GameState
from okey.logic.tiles import Tile, WildcardTile
from okey.session.models import Player, Room


class PlayerView(BaseModel):
    id: str
    name: str
    is_host: bool
    is_bot: bool
    hand_count: int
    score: int


class RoomView(BaseModel):
    """Masked state of a room, safe to broadcast to every seat."""

    room_id: str
    game_state: GameState
    players: list[PlayerView]
    turn_index: int
    deck_size: int
    discards: dict[str, list[Tile]]
    indicator_tile: Tile | None = None
    okey_tile: WildcardTile | None = None
    max_players: int


class GameStartedView(BaseModel):
    """Private deal for one seat."""

    room_id: str
    hand: list[Tile]
    turn_index: int
    indicator_tile: Tile
    okey_tile: WildcardTile
    deck_size: int
    players: list[PlayerView]


class RoomSummary(BaseModel):
    """Room information for lobby listing."""

    id: str
    host: str
    player_count: int


def player_view(player: Player) -> PlayerView:
    return PlayerView(
        id=player.id,
        name=player.name,
        is_host=player.is_host,
        is_bot=player.is_bot,
        hand_count=player.hand_size,
        score=player.score,
    )


def room_view(room: Room) -> RoomView:
    return RoomView(
        room_id=room.room_id,
        game_state=room.game_state,
        players=[player_view(p) for p in room.players],
        turn_index=room.turn_index,
        deck_size=len(room.deck),
        discards={player_id: list(pile) for player_id, pile in room.discards.items()},
        indicator_tile=room.indicator_tile,
        okey_tile=room.okey_tile,
        max_players=room.settings.max_players,
    )


def game_started_view(room: Room, player_id: str) -> GameStartedView:
    """Build the deal payload for player_id, exposing only that seat's hand.

    Raises ValueError if the player is not seated or the game has no indicator yet.
    """
    player = room.get_player(player_id)
    if player is None:
        raise ValueError(f"player {player_id} is not seated in room {room.room_id}")
    if room.indicator_tile is None or room.okey_tile is None:
        raise ValueError(f"room {room.room_id} has not been dealt")
    return GameStartedView(
        room_id=room.room_id,
        hand=list(player.hand),
        turn_index=room.turn_index,
        indicator_tile=room.indicator_tile,
        okey_tile=room.okey_tile,
        deck_size=len(room.deck),
        players=[player_view(p) for p in room.players],
    )


def room_summary(room: Room) -> RoomSummary:
    host = room.host
    return RoomSummary(id=room.room_id, host=host.name if host else "", player_count=room.player_count)


def room_summaries(rooms: list[Room]) -> list[RoomSummary]:
    return [room_summary(room) for room in rooms]

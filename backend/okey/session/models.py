from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from okey.logic.enums import GameState
from okey.logic.settings import GameSettings

if TYPE_CHECKING:
    from okey.logic.tiles import Tile, WildcardTile

ROOM_CODE_LENGTH = 6


@dataclass
class Player:
    """Represent a seat in a room.

    For humans the id is the connection id; bots get a synthetic id.

    Lifecycle:
    - Created by create_room, join_room or add_bot
    - On start_game: hand is dealt and score reset
    - On leave/disconnect: removed from the room entirely
    """

    id: str
    name: str
    is_host: bool = False
    is_bot: bool = False
    hand: list[Tile] = field(default_factory=list)
    score: int = 0

    @property
    def hand_size(self) -> int:
        return len(self.hand)


@dataclass
class Room:
    """A four-seat table. Seat order is turn order."""

    room_id: str
    players: list[Player] = field(default_factory=list)
    game_state: GameState = GameState.WAITING
    deck: list[Tile] = field(default_factory=list)  # draw pile, top is the end
    discards: dict[str, list[Tile]] = field(default_factory=dict)  # player id -> pile, top is the end
    turn_index: int = 0
    indicator_tile: Tile | None = None
    okey_tile: WildcardTile | None = None
    settings: GameSettings = field(default_factory=GameSettings)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_full(self) -> bool:
        return self.player_count >= self.settings.max_players

    @property
    def has_humans(self) -> bool:
        return any(not p.is_bot for p in self.players)

    @property
    def host(self) -> Player | None:
        return next((p for p in self.players if p.is_host), None)

    @property
    def current_player(self) -> Player | None:
        if not self.players or self.turn_index >= len(self.players):
            return None
        return self.players[self.turn_index]

    @property
    def previous_index(self) -> int:
        """Seat whose discard pile the current seat may draw from."""
        n = len(self.players)
        return (self.turn_index - 1 + n) % n

    @property
    def human_ids(self) -> list[str]:
        return [p.id for p in self.players if not p.is_bot]

    def seat_of(self, player_id: str) -> int | None:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return None

    def get_player(self, player_id: str) -> Player | None:
        seat = self.seat_of(player_id)
        return None if seat is None else self.players[seat]

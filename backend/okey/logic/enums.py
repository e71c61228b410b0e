"""
String enum definitions for Okey game concepts.
"""

from enum import StrEnum


class TileColor(StrEnum):
    """Colors of numbered tiles."""

    RED = "red"
    BLACK = "black"
    BLUE = "blue"
    YELLOW = "yellow"


class TileType(StrEnum):
    NORMAL = "normal"
    FAKE_JOKER = "fake_joker"


class GameState(StrEnum):
    """Lifecycle state of a room.

    WAITING accepts joins, PLAYING has a dealt deck and active turns,
    PAUSED is entered when a seat leaves mid-game and does not resume.
    """

    WAITING = "WAITING"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"


class DrawSource(StrEnum):
    """Where a tile is drawn from."""

    DECK = "deck"
    DISCARD = "discard"


class DeckExhaustionPolicy(StrEnum):
    """What a deck draw does when the draw pile is empty."""

    BLOCK = "block"  # fail with deck_empty
    RESHUFFLE = "reshuffle"  # rebuild the pile from buried discards


class ErrorCode(StrEnum):
    """Error codes sent to clients for rejected room operations."""

    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    GAME_ALREADY_STARTED = "game_already_started"
    GAME_NOT_ACTIVE = "game_not_active"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    NOT_YOUR_TURN = "not_your_turn"
    ALREADY_DREW = "already_drew"
    MUST_DRAW_BEFORE_DISCARD = "must_draw_before_discard"
    DECK_EMPTY = "deck_empty"
    DISCARD_PILE_EMPTY = "discard_pile_empty"
    INVALID_SOURCE = "invalid_source"
    INVALID_HAND_INDEX = "invalid_hand_index"

"""
Bot decision making for Okey.

Bots follow a random strategy: draw from the pile when it has tiles, fall
back to the previous seat's discard, and throw away a random tile. Decisions
are pure; the room registry applies them.
"""

from __future__ import annotations

import random
import secrets
from enum import Enum
from typing import TYPE_CHECKING

from okey.logic.enums import DrawSource

if TYPE_CHECKING:
    from okey.logic.tiles import Tile

BOT_ID_PREFIX = "bot_"


class BotStrategy(Enum):
    """Available bot strategies."""

    RANDOM = "random"  # prefer the draw pile, discard a uniformly random tile


class BotPlayer:
    """
    Bot player with configurable decision-making strategy.
    """

    def __init__(self, strategy: BotStrategy = BotStrategy.RANDOM, rng: random.Random | None = None) -> None:
        self.strategy = strategy
        self._rng = rng or random.SystemRandom()

    def choose_draw_source(self, deck_size: int, previous_discard_size: int) -> DrawSource | None:
        """
        Decide where to draw from.

        Returns None when neither the pile nor the previous seat's discard has a tile.
        """
        if deck_size > 0:
            return DrawSource.DECK
        if previous_discard_size > 0:
            return DrawSource.DISCARD
        return None

    def choose_discard_index(self, hand: list[Tile]) -> int:
        """Pick the hand index to discard, uniformly at random."""
        if not hand:
            raise ValueError("cannot choose a discard from an empty hand")
        return self._rng.randrange(len(hand))


def make_bot_id() -> str:
    """Synthesize a unique id for a bot seat."""
    return f"{BOT_ID_PREFIX}{secrets.token_hex(6)}"


def make_bot_name(seat_number: int) -> str:
    return f"Bot {seat_number}"

"""
Tile set construction, shuffling, indicator selection and dealing for Okey.

The 106-tile set is two copies of four colors x values 1-13 plus two fake
jokers. Functions here are pure over tile lists: they return new lists and
never mutate their input.
"""

import random

from pydantic import BaseModel, ConfigDict

from okey.logic.enums import TileColor, TileType

COLORS: tuple[TileColor, ...] = (TileColor.RED, TileColor.BLACK, TileColor.BLUE, TileColor.YELLOW)
MIN_VALUE = 1
MAX_VALUE = 13
JOKER_VALUE = 0
NUM_COPIES = 2
NUM_FAKE_JOKERS = 2
TOTAL_TILES = NUM_COPIES * len(COLORS) * MAX_VALUE + NUM_FAKE_JOKERS  # 106

MAX_SEATS = 4
DEALER_HAND_SIZE = 22  # first seat starts holding the tile it would have drawn
HAND_SIZE = 21

_system_rng = random.SystemRandom()


class Tile(BaseModel):
    """A physical tile. Identity is the id, unique within one deck."""

    model_config = ConfigDict(frozen=True)

    id: int
    color: TileColor | None = None
    value: int
    type: TileType = TileType.NORMAL

    @property
    def is_fake_joker(self) -> bool:
        return self.type == TileType.FAKE_JOKER


class WildcardTile(BaseModel):
    """The okey: a tile face derived from the indicator, not a physical tile."""

    model_config = ConfigDict(frozen=True)

    color: TileColor
    value: int


def build_deck() -> list[Tile]:
    """
    Build the full, unshuffled 106-tile set.

    Ids run 1..106: both copies of every color/value first, then the fake jokers.
    """
    deck: list[Tile] = []
    next_id = 1
    for _ in range(NUM_COPIES):
        for color in COLORS:
            for value in range(MIN_VALUE, MAX_VALUE + 1):
                deck.append(Tile(id=next_id, color=color, value=value))
                next_id += 1
    for _ in range(NUM_FAKE_JOKERS):
        deck.append(Tile(id=next_id, value=JOKER_VALUE, type=TileType.FAKE_JOKER))
        next_id += 1
    return deck


def shuffle(deck: list[Tile], rng: random.Random | None = None) -> list[Tile]:
    """
    Return a uniformly shuffled copy of the deck (Fisher-Yates).

    Each position i swaps with a position drawn uniformly from [0, i], which
    gives every permutation equal probability.
    """
    rng = rng or _system_rng
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def wildcard_for(indicator: Tile) -> WildcardTile:
    """Derive the okey from an indicator: same color, value + 1, 13 wraps to 1."""
    if indicator.is_fake_joker or indicator.color is None:
        raise ValueError(f"fake joker {indicator.id} cannot be an indicator")
    value = indicator.value + 1 if indicator.value < MAX_VALUE else MIN_VALUE
    return WildcardTile(color=indicator.color, value=value)


def select_indicator_and_wildcard(
    deck: list[Tile],
    rng: random.Random | None = None,
) -> tuple[Tile, WildcardTile]:
    """
    Pick a uniformly random non-joker tile as the indicator and derive the okey.

    The indicator is only observed; it stays in the deck.
    """
    if not any(not tile.is_fake_joker for tile in deck):
        raise ValueError("deck has no tile that can serve as indicator")
    rng = rng or _system_rng
    indicator = deck[rng.randrange(len(deck))]
    while indicator.is_fake_joker:
        indicator = deck[rng.randrange(len(deck))]
    return indicator, wildcard_for(indicator)


def deal(deck: list[Tile], seat_count: int = MAX_SEATS) -> tuple[list[list[Tile]], list[Tile]]:
    """
    Deal hands from the end of an already shuffled deck.

    Seat 0 (the dealer) receives 22 tiles, every other seat 21. Only
    seat_count hands are dealt; every undealt tile stays in the returned
    draw pile, whose end is the top.
    """
    if not (1 <= seat_count <= MAX_SEATS):
        raise ValueError(f"seat_count must be 1-{MAX_SEATS}, got {seat_count}")
    needed = DEALER_HAND_SIZE + HAND_SIZE * (seat_count - 1)
    if len(deck) < needed:
        raise ValueError(f"need {needed} tiles to deal {seat_count} hands, deck has {len(deck)}")

    remaining = list(deck)
    hands: list[list[Tile]] = []
    for seat in range(seat_count):
        size = DEALER_HAND_SIZE if seat == 0 else HAND_SIZE
        hands.append([remaining.pop() for _ in range(size)])
    return hands, remaining

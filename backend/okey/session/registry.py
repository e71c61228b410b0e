"""Room registry: the authoritative state machine for every live room.

Rooms move WAITING -> PLAYING -> PAUSED. Every public operation validates
first and mutates only once nothing can fail, raising a RoomError subclass
otherwise. Operations are synchronous and run to completion on the event
loop; the only deferred work is the bot turn, which the BotTurnScheduler
runs as a cancellable task and which calls back into apply_bot_draw and
apply_bot_discard.
"""

from __future__ import annotations

import random
import secrets
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from okey.logic.bot import BotPlayer, make_bot_id, make_bot_name
from okey.logic.enums import DeckExhaustionPolicy, DrawSource, GameState
from okey.logic.exceptions import (
    AlreadyDrewError,
    AlreadyInRoomError,
    DeckEmptyError,
    DiscardPileEmptyError,
    GameAlreadyStartedError,
    GameNotActiveError,
    InvalidHandIndexError,
    InvalidSourceError,
    MustDrawBeforeDiscardError,
    NotEnoughPlayersError,
    NotYourTurnError,
    RoomFullError,
    RoomNotFoundError,
)
from okey.logic.settings import GameSettings
from okey.logic.tiles import (
    DEALER_HAND_SIZE,
    build_deck,
    deal,
    select_indicator_and_wildcard,
    shuffle,
)
from okey.session.bot_scheduler import BotTurnScheduler
from okey.session.events import EventChannel
from okey.session.models import ROOM_CODE_LENGTH, Player, Room
from okey.session.store import InMemoryRoomStore

if TYPE_CHECKING:
    from okey.logic.tiles import Tile
    from okey.session.store import RoomStore

logger = structlog.get_logger()

_ROOM_CODE_ALPHABET = string.digits + string.ascii_uppercase  # base-36


@dataclass(frozen=True)
class LeaveResult:
    """Outcome of a leave. room_id is None when the player was in no room."""

    room_id: str | None
    room_became_empty: bool = False


@dataclass(frozen=True)
class BotDrawOutcome:
    """A bot's draw. tile is None when the bot already held a full hand."""

    tile: Tile | None
    source: DrawSource | None


@dataclass(frozen=True)
class BotDiscardOutcome:
    discarded_tile: Tile
    next_turn: int


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


class RoomRegistry:
    """Own all rooms and enforce room, turn and draw/discard rules."""

    def __init__(
        self,
        store: RoomStore | None = None,
        events: EventChannel | None = None,
        settings: GameSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store: RoomStore = store if store is not None else InMemoryRoomStore()
        self._events = events if events is not None else EventChannel()
        self._settings = settings or GameSettings()
        self._rng = rng or random.SystemRandom()
        self._bot = BotPlayer(rng=self._rng)
        self._bot_scheduler = BotTurnScheduler(self, self._events, self._settings)

    # --- Queries ---

    @property
    def events(self) -> EventChannel:
        return self._events

    @property
    def bot_scheduler(self) -> BotTurnScheduler:
        return self._bot_scheduler

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def room_count(self) -> int:
        return len(self._store.all())

    def get_room(self, code: str) -> Room | None:
        return self._store.get(normalize_room_code(code))

    def room_of(self, player_id: str) -> Room | None:
        """Return the room in which player_id holds a seat."""
        for room in self._store.all():
            if room.seat_of(player_id) is not None:
                return room
        return None

    def list_rooms(self) -> list[Room]:
        """Rooms open for joining."""
        return self._store.list_public()

    # --- Room lifecycle ---

    def create_room(self, creator_id: str, name: str) -> Room:
        """Create a room with a fresh code and seat the creator as host."""
        self._ensure_not_seated(creator_id)
        room = Room(
            room_id=self._generate_room_code(),
            players=[Player(id=creator_id, name=name, is_host=True)],
            settings=self._settings,
        )
        self._store.put(room)
        logger.info("room created", room_id=room.room_id, player_id=creator_id)
        return room

    def join_room(self, code: str, player_id: str, name: str) -> Room:
        room = self._require_room(code)
        self._ensure_joinable(room)
        self._ensure_not_seated(player_id)
        room.players.append(Player(id=player_id, name=name))
        logger.info("player joined room", room_id=room.room_id, player_id=player_id, seats=room.player_count)
        return room

    def add_bot(self, code: str) -> Room:
        room = self._require_room(code)
        self._ensure_joinable(room)
        bot = Player(id=make_bot_id(), name=make_bot_name(room.player_count + 1), is_bot=True)
        room.players.append(bot)
        logger.info("bot added", room_id=room.room_id, player_id=bot.id, seats=room.player_count)
        return room

    def leave(self, player_id: str) -> LeaveResult:
        """Remove a seat from whichever room holds it.

        The room is deleted once no human seat remains; otherwise a PLAYING
        room becomes PAUSED. Any pending bot turn in the room is cancelled.
        """
        room = self.room_of(player_id)
        if room is None:
            return LeaveResult(room_id=None)

        seat = room.seat_of(player_id)
        player = room.players.pop(seat)
        self._bot_scheduler.cancel_room(room.room_id)
        logger.info("player left room", room_id=room.room_id, player_id=player_id, seats=room.player_count)

        if not room.has_humans:
            self._delete_room(room)
            return LeaveResult(room_id=room.room_id, room_became_empty=True)

        if player.is_host:
            new_host = next(p for p in room.players if not p.is_bot)
            new_host.is_host = True
            logger.info("host reassigned", room_id=room.room_id, player_id=new_host.id)

        if room.game_state == GameState.PLAYING:
            room.game_state = GameState.PAUSED
            logger.info("game paused", room_id=room.room_id)

        return LeaveResult(room_id=room.room_id)

    def start_game(self, code: str) -> Room:
        """Deal a fresh deck to every seat and hand the first turn to seat 0."""
        room = self._require_room(code)
        if room.game_state != GameState.WAITING:
            raise GameAlreadyStartedError
        if room.player_count < self._settings.min_players:
            raise NotEnoughPlayersError(f"Not enough players (min {self._settings.min_players})")

        deck = shuffle(build_deck(), self._rng)
        indicator, okey = select_indicator_and_wildcard(deck, self._rng)
        hands, remaining = deal(deck, room.player_count)

        for player, hand in zip(room.players, hands, strict=True):
            player.hand = hand
            player.score = 0
        room.deck = remaining
        room.discards = {p.id: [] for p in room.players}
        room.indicator_tile = indicator
        room.okey_tile = okey
        room.turn_index = 0
        room.game_state = GameState.PLAYING

        logger.info(
            "game started",
            room_id=room.room_id,
            seats=room.player_count,
            deck_size=len(room.deck),
            indicator_id=indicator.id,
        )
        self._schedule_if_bot_turn(room)
        return room

    def shutdown(self) -> None:
        """Cancel every pending bot turn."""
        self._bot_scheduler.cancel_all()

    # --- Turn actions ---

    def draw_tile(self, code: str, player_id: str, source: DrawSource | str) -> Tile:
        room = self._require_room(code)
        player = self._require_turn(room, player_id)
        if player.hand_size >= DEALER_HAND_SIZE:
            raise AlreadyDrewError("Already drew, must discard")
        try:
            draw_source = DrawSource(source)
        except ValueError:
            raise InvalidSourceError(f"Invalid source: {source!r}") from None

        if draw_source == DrawSource.DECK:
            self._ensure_deck_drawable(room)
        elif not room.discards.get(room.players[room.previous_index].id):
            raise DiscardPileEmptyError

        return self._draw(room, player, draw_source)

    def discard_tile(self, code: str, player_id: str, hand_index: int) -> Tile:
        room = self._require_room(code)
        player = self._require_turn(room, player_id)
        if player.hand_size != DEALER_HAND_SIZE:
            raise MustDrawBeforeDiscardError("Must draw before discarding")
        if isinstance(hand_index, bool) or not isinstance(hand_index, int) or not 0 <= hand_index < player.hand_size:
            raise InvalidHandIndexError(f"Hand index {hand_index!r} out of range 0-{player.hand_size - 1}")
        return self._discard(room, player, hand_index)

    # --- Bot turn steps (called by BotTurnScheduler) ---

    def apply_bot_draw(self, code: str, bot_id: str) -> BotDrawOutcome | None:
        """Draw for a bot if it is still its turn. Returns None when nothing may happen."""
        room = self._bot_turn_room(code, bot_id)
        if room is None:
            return None
        bot = room.players[room.turn_index]
        if bot.hand_size >= DEALER_HAND_SIZE:
            return BotDrawOutcome(tile=None, source=None)

        previous_pile = room.discards.get(room.players[room.previous_index].id, [])
        source = self._bot.choose_draw_source(self._drawable_deck_size(room), len(previous_pile))
        if source is None:
            logger.warning("bot has nothing to draw", room_id=room.room_id, player_id=bot_id)
            return None
        if source == DrawSource.DECK:
            self._ensure_deck_drawable(room)
        tile = self._draw(room, bot, source)
        logger.info("bot drew", room_id=room.room_id, player_id=bot_id, source=source)
        return BotDrawOutcome(tile=tile, source=source)

    def apply_bot_discard(self, code: str, bot_id: str) -> BotDiscardOutcome | None:
        room = self._bot_turn_room(code, bot_id)
        if room is None:
            return None
        bot = room.players[room.turn_index]
        if bot.hand_size != DEALER_HAND_SIZE:
            logger.debug("bot discard skipped, hand not full", room_id=room.room_id, player_id=bot_id)
            return None
        tile = self._discard(room, bot, self._bot.choose_discard_index(bot.hand))
        logger.info("bot discarded", room_id=room.room_id, player_id=bot_id, tile_id=tile.id)
        return BotDiscardOutcome(discarded_tile=tile, next_turn=room.turn_index)

    # --- Mutation helpers (preconditions already checked) ---

    def _draw(self, room: Room, player: Player, source: DrawSource) -> Tile:
        if source == DrawSource.DECK:
            if not room.deck:
                self._reshuffle_discards(room)
            tile = room.deck.pop()
        else:
            tile = room.discards[room.players[room.previous_index].id].pop()
        player.hand.append(tile)
        return tile

    def _discard(self, room: Room, player: Player, hand_index: int) -> Tile:
        tile = player.hand.pop(hand_index)
        room.discards.setdefault(player.id, []).append(tile)
        room.turn_index = (room.turn_index + 1) % room.player_count
        self._schedule_if_bot_turn(room)
        return tile

    def _reshuffle_discards(self, room: Room) -> None:
        """Rebuild the draw pile from every discard except each pile's top tile."""
        gathered: list[Tile] = []
        for pile in room.discards.values():
            gathered.extend(pile[:-1])
            del pile[:-1]
        room.deck = shuffle(gathered, self._rng)
        logger.info("draw pile rebuilt from discards", room_id=room.room_id, deck_size=len(room.deck))

    def _schedule_if_bot_turn(self, room: Room) -> None:
        player = room.current_player
        if room.game_state == GameState.PLAYING and player is not None and player.is_bot:
            self._bot_scheduler.schedule(room.room_id, player.id)

    def _delete_room(self, room: Room) -> None:
        self._store.delete(room.room_id)
        self._bot_scheduler.cancel_room(room.room_id)
        logger.info("room deleted", room_id=room.room_id)

    # --- Validation helpers ---

    def _require_room(self, code: str) -> Room:
        room = self.get_room(code)
        if room is None:
            raise RoomNotFoundError("Room not found")
        return room

    def _require_turn(self, room: Room, player_id: str) -> Player:
        if room.game_state != GameState.PLAYING:
            raise GameNotActiveError("Game not active")
        if room.seat_of(player_id) != room.turn_index:
            raise NotYourTurnError("Not your turn")
        return room.players[room.turn_index]

    def _ensure_joinable(self, room: Room) -> None:
        if room.is_full:
            raise RoomFullError("Room full")
        if room.game_state != GameState.WAITING:
            raise GameAlreadyStartedError("Game already started")

    def _ensure_not_seated(self, player_id: str) -> None:
        room = self.room_of(player_id)
        if room is not None:
            raise AlreadyInRoomError(f"Already seated in room {room.room_id}")

    def _ensure_deck_drawable(self, room: Room) -> None:
        if self._drawable_deck_size(room) == 0:
            raise DeckEmptyError("Deck empty")

    def _drawable_deck_size(self, room: Room) -> int:
        """Tiles a deck draw could reach, counting discards a reshuffle would recover."""
        if room.deck or room.settings.deck_exhaustion == DeckExhaustionPolicy.BLOCK:
            return len(room.deck)
        return sum(max(len(pile) - 1, 0) for pile in room.discards.values())

    def _bot_turn_room(self, code: str, bot_id: str) -> Room | None:
        """Re-read the room at fire time; None if the bot's turn is no longer current."""
        room = self._store.get(code)
        if room is None or room.game_state != GameState.PLAYING:
            logger.debug("bot turn dropped, room gone or not playing", room_id=code, player_id=bot_id)
            return None
        current = room.current_player
        if current is None or current.id != bot_id or not current.is_bot:
            logger.debug("bot turn dropped, turn moved on", room_id=code, player_id=bot_id)
            return None
        return room

    def _generate_room_code(self) -> str:
        while True:
            code = "".join(secrets.choice(_ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if self._store.get(code) is None:
                return code

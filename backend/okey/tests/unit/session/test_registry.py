"""Unit tests for RoomRegistry room lifecycle and turn rules."""

import random
import string

import pytest

from okey.logic.bot import BOT_ID_PREFIX
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
from okey.logic.tiles import DEALER_HAND_SIZE, HAND_SIZE, TOTAL_TILES
from okey.session.registry import LeaveResult, RoomRegistry


def tile_ids_in_play(room) -> list[int]:
    ids = [t.id for t in room.deck]
    for player in room.players:
        ids.extend(t.id for t in player.hand)
    for pile in room.discards.values():
        ids.extend(t.id for t in pile)
    return sorted(ids)


def assert_conserved(room) -> None:
    assert tile_ids_in_play(room) == list(range(1, TOTAL_TILES + 1))


def seat_humans(registry, count: int):
    """Create a room with `count` humans p0..p{count-1}; p0 is host."""
    room = registry.create_room("p0", "Alice")
    for i in range(1, count):
        registry.join_room(room.room_id, f"p{i}", f"Player {i}")
    return room


class TestCreateRoom:
    def test_creates_waiting_room_with_host(self, registry):
        room = registry.create_room("p0", "Alice")

        assert room.game_state == GameState.WAITING
        assert len(room.players) == 1
        host = room.players[0]
        assert (host.id, host.name, host.is_host, host.is_bot) == ("p0", "Alice", True, False)
        assert registry.get_room(room.room_id) is room
        assert registry.room_count == 1

    def test_room_code_is_six_uppercase_base36_chars(self, registry):
        room = registry.create_room("p0", "Alice")
        assert len(room.room_id) == 6
        assert set(room.room_id) <= set(string.ascii_uppercase + string.digits)

    def test_room_codes_are_unique(self, registry):
        codes = {registry.create_room(f"p{i}", "x").room_id for i in range(100)}
        assert len(codes) == 100

    def test_player_already_seated_cannot_create(self, registry):
        registry.create_room("p0", "Alice")
        with pytest.raises(AlreadyInRoomError):
            registry.create_room("p0", "Alice")
        assert registry.room_count == 1


class TestJoinRoom:
    def test_join_appends_seat(self, registry):
        room = registry.create_room("p0", "Alice")
        joined = registry.join_room(room.room_id, "p1", "Bob")

        assert joined is room
        assert [p.id for p in room.players] == ["p0", "p1"]
        assert room.players[1].is_host is False

    def test_code_is_case_insensitive(self, registry):
        room = registry.create_room("p0", "Alice")
        registry.join_room(f"  {room.room_id.lower()} ", "p1", "Bob")
        assert room.player_count == 2

    def test_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError, match="Room not found"):
            registry.join_room("NOPE00", "p1", "Bob")

    def test_fifth_player_rejected(self, registry):
        room = seat_humans(registry, 4)
        with pytest.raises(RoomFullError):
            registry.join_room(room.room_id, "p4", "Eve")
        assert room.player_count == 4

    def test_cannot_join_started_game(self, registry):
        room = seat_humans(registry, 2)
        registry.start_game(room.room_id)
        with pytest.raises(GameAlreadyStartedError):
            registry.join_room(room.room_id, "p2", "Carol")

    def test_cannot_join_twice(self, registry):
        room = seat_humans(registry, 2)
        with pytest.raises(AlreadyInRoomError):
            registry.join_room(room.room_id, "p1", "Bob")

    def test_cannot_join_second_room(self, registry):
        registry.create_room("p0", "Alice")
        other = registry.create_room("p1", "Bob")
        with pytest.raises(AlreadyInRoomError):
            registry.join_room(other.room_id, "p0", "Alice")


class TestAddBot:
    def test_adds_named_bot_seat(self, registry):
        room = registry.create_room("p0", "Alice")
        registry.add_bot(room.room_id)

        bot = room.players[1]
        assert bot.is_bot
        assert bot.id.startswith(BOT_ID_PREFIX)
        assert bot.name == "Bot 2"

    def test_bot_ids_unique_within_room(self, registry):
        room = registry.create_room("p0", "Alice")
        for _ in range(3):
            registry.add_bot(room.room_id)
        assert len({p.id for p in room.players}) == 4

    def test_full_room(self, registry):
        room = seat_humans(registry, 4)
        with pytest.raises(RoomFullError):
            registry.add_bot(room.room_id)

    def test_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            registry.add_bot("ZZZZZZ")

    def test_started_room(self, registry):
        room = seat_humans(registry, 2)
        registry.start_game(room.room_id)
        with pytest.raises(GameAlreadyStartedError):
            registry.add_bot(room.room_id)


class TestLeave:
    def test_player_in_no_room(self, registry):
        assert registry.leave("ghost") == LeaveResult(room_id=None, room_became_empty=False)

    def test_last_human_leaving_deletes_room(self, registry):
        room = registry.create_room("p0", "Alice")
        registry.add_bot(room.room_id)

        result = registry.leave("p0")

        assert result == LeaveResult(room_id=room.room_id, room_became_empty=True)
        assert registry.get_room(room.room_id) is None
        assert registry.room_count == 0

    def test_host_passes_to_first_remaining_human(self, registry):
        room = registry.create_room("p0", "Alice")
        registry.add_bot(room.room_id)
        registry.join_room(room.room_id, "p1", "Bob")
        registry.join_room(room.room_id, "p2", "Carol")

        result = registry.leave("p0")

        assert result.room_became_empty is False
        assert room.host is not None
        assert room.host.id == "p1"
        assert [p.is_host for p in room.players] == [False, True, False]

    def test_leaving_waiting_room_keeps_it_waiting(self, registry):
        room = seat_humans(registry, 3)
        registry.leave("p2")
        assert room.game_state == GameState.WAITING
        assert room.player_count == 2

    def test_leaving_mid_game_pauses(self, registry):
        room = seat_humans(registry, 3)
        registry.start_game(room.room_id)

        registry.leave("p1")

        assert room.game_state == GameState.PAUSED
        assert [p.id for p in room.players] == ["p0", "p2"]
        with pytest.raises(GameNotActiveError):
            registry.discard_tile(room.room_id, "p0", 0)

    def test_player_can_create_after_leaving(self, registry):
        registry.create_room("p0", "Alice")
        registry.leave("p0")
        room = registry.create_room("p0", "Alice")
        assert registry.room_of("p0") is room


class TestStartGame:
    def test_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            registry.start_game("ABCDEF")

    def test_needs_two_seats(self, registry):
        room = registry.create_room("p0", "Alice")
        with pytest.raises(NotEnoughPlayersError, match="min 2"):
            registry.start_game(room.room_id)
        assert room.game_state == GameState.WAITING

    def test_cannot_start_twice(self, registry):
        room = seat_humans(registry, 2)
        registry.start_game(room.room_id)
        deck_before = list(room.deck)
        with pytest.raises(GameAlreadyStartedError):
            registry.start_game(room.room_id)
        assert room.deck == deck_before

    @pytest.mark.parametrize("seats", [2, 3, 4])
    def test_deals_every_seat_and_conserves_tiles(self, registry, seats):
        room = seat_humans(registry, seats)
        registry.start_game(room.room_id)

        assert room.game_state == GameState.PLAYING
        assert room.turn_index == 0
        assert room.players[0].hand_size == DEALER_HAND_SIZE
        assert all(p.hand_size == HAND_SIZE for p in room.players[1:])
        assert len(room.deck) == TOTAL_TILES - DEALER_HAND_SIZE - HAND_SIZE * (seats - 1)
        assert room.discards == {p.id: [] for p in room.players}
        assert_conserved(room)

    def test_indicator_and_okey(self, registry):
        room = seat_humans(registry, 2)
        registry.start_game(room.room_id)

        assert room.indicator_tile is not None
        assert not room.indicator_tile.is_fake_joker
        assert room.okey_tile.color == room.indicator_tile.color
        assert room.okey_tile.value == room.indicator_tile.value % 13 + 1

    def test_resets_scores(self, registry):
        room = seat_humans(registry, 2)
        room.players[1].score = 7
        registry.start_game(room.room_id)
        assert [p.score for p in room.players] == [0, 0]

    def test_same_seed_deals_same_hands(self):
        hands = []
        for _ in range(2):
            registry = RoomRegistry(rng=random.Random(99))
            room = seat_humans(registry, 2)
            registry.start_game(room.room_id)
            hands.append([t.id for t in room.players[0].hand])
        assert hands[0] == hands[1]


@pytest.fixture
def two_seat_game(registry):
    room = seat_humans(registry, 2)
    registry.start_game(room.room_id)
    return room


class TestDrawTile:
    def test_requires_active_game(self, registry):
        room = seat_humans(registry, 2)
        with pytest.raises(GameNotActiveError):
            registry.draw_tile(room.room_id, "p0", "deck")

    def test_unknown_room(self, registry):
        with pytest.raises(RoomNotFoundError):
            registry.draw_tile("XXXXXX", "p0", "deck")

    def test_not_your_turn(self, registry, two_seat_game):
        with pytest.raises(NotYourTurnError):
            registry.draw_tile(two_seat_game.room_id, "p1", "deck")

    def test_stranger_is_not_on_turn(self, registry, two_seat_game):
        with pytest.raises(NotYourTurnError):
            registry.draw_tile(two_seat_game.room_id, "ghost", "deck")

    def test_dealer_already_holds_22(self, registry, two_seat_game):
        with pytest.raises(AlreadyDrewError):
            registry.draw_tile(two_seat_game.room_id, "p0", "deck")
        assert two_seat_game.players[0].hand_size == DEALER_HAND_SIZE

    def test_draw_from_deck_takes_top(self, registry, two_seat_game):
        room = two_seat_game
        registry.discard_tile(room.room_id, "p0", 0)
        top = room.deck[-1]
        deck_size = len(room.deck)

        tile = registry.draw_tile(room.room_id, "p1", DrawSource.DECK)

        assert tile == top
        assert len(room.deck) == deck_size - 1
        assert room.players[1].hand[-1] == tile
        assert room.players[1].hand_size == DEALER_HAND_SIZE
        assert_conserved(room)

    def test_draw_from_previous_discard(self, registry, two_seat_game):
        room = two_seat_game
        discarded = registry.discard_tile(room.room_id, "p0", 3)

        tile = registry.draw_tile(room.room_id, "p1", "discard")

        assert tile == discarded
        assert room.discards["p0"] == []
        assert_conserved(room)

    def test_second_draw_rejected(self, registry, two_seat_game):
        room = two_seat_game
        registry.discard_tile(room.room_id, "p0", 0)
        registry.draw_tile(room.room_id, "p1", "deck")
        with pytest.raises(AlreadyDrewError):
            registry.draw_tile(room.room_id, "p1", "deck")

    def test_invalid_source(self, registry, two_seat_game):
        room = two_seat_game
        registry.discard_tile(room.room_id, "p0", 0)
        with pytest.raises(InvalidSourceError):
            registry.draw_tile(room.room_id, "p1", "table")
        assert room.players[1].hand_size == HAND_SIZE

    def test_empty_discard_pile_leaves_hand_unchanged(self, registry, two_seat_game):
        room = two_seat_game
        registry.discard_tile(room.room_id, "p0", 0)
        room.discards["p0"].clear()
        hand_before = list(room.players[1].hand)

        with pytest.raises(DiscardPileEmptyError):
            registry.draw_tile(room.room_id, "p1", "discard")

        assert room.players[1].hand == hand_before

    def test_empty_deck_blocks_under_block_policy(self, rng):
        registry = RoomRegistry(settings=GameSettings(deck_exhaustion=DeckExhaustionPolicy.BLOCK), rng=rng)
        room = seat_humans(registry, 2)
        registry.start_game(room.room_id)
        registry.discard_tile(room.room_id, "p0", 0)
        room.deck.clear()

        with pytest.raises(DeckEmptyError):
            registry.draw_tile(room.room_id, "p1", "deck")
        assert room.players[1].hand_size == HAND_SIZE

    def test_empty_deck_reshuffles_buried_discards(self, registry, two_seat_game):
        room = two_seat_game
        discarded = registry.discard_tile(room.room_id, "p0", 0)
        buried = room.deck
        room.discards["p0"] = [*buried, discarded]
        room.deck = []

        tile = registry.draw_tile(room.room_id, "p1", "deck")

        assert tile in buried
        assert room.discards["p0"] == [discarded]
        assert len(room.deck) == len(buried) - 1
        assert_conserved(room)

    def test_reshuffle_with_nothing_buried_is_deck_empty(self, registry, two_seat_game):
        room = two_seat_game
        discarded = registry.discard_tile(room.room_id, "p0", 0)
        room.deck = []

        with pytest.raises(DeckEmptyError):
            registry.draw_tile(room.room_id, "p1", "deck")
        assert room.discards["p0"] == [discarded]


class TestDiscardTile:
    def test_moves_tile_and_advances_turn(self, registry, two_seat_game):
        room = two_seat_game
        expected = room.players[0].hand[5]

        tile = registry.discard_tile(room.room_id, "p0", 5)

        assert tile == expected
        assert room.discards["p0"] == [expected]
        assert room.players[0].hand_size == HAND_SIZE
        assert room.turn_index == 1
        assert_conserved(room)

    def test_must_draw_first(self, registry, two_seat_game):
        room = two_seat_game
        registry.discard_tile(room.room_id, "p0", 0)
        with pytest.raises(MustDrawBeforeDiscardError):
            registry.discard_tile(room.room_id, "p1", 0)
        assert room.turn_index == 1

    def test_not_your_turn(self, registry, two_seat_game):
        with pytest.raises(NotYourTurnError):
            registry.discard_tile(two_seat_game.room_id, "p1", 0)

    @pytest.mark.parametrize("index", [-1, 22, 100, True])
    def test_index_out_of_range(self, registry, two_seat_game, index):
        room = two_seat_game
        with pytest.raises(InvalidHandIndexError):
            registry.discard_tile(room.room_id, "p0", index)
        assert room.players[0].hand_size == DEALER_HAND_SIZE
        assert room.turn_index == 0

    def test_turn_wraps_after_last_seat(self, registry):
        room = seat_humans(registry, 3)
        registry.start_game(room.room_id)
        registry.discard_tile(room.room_id, "p0", 0)
        for player_id in ("p1", "p2"):
            registry.draw_tile(room.room_id, player_id, "deck")
            registry.discard_tile(room.room_id, player_id, 0)
        assert room.turn_index == 0


def test_tiles_conserved_through_many_turns(registry):
    room = seat_humans(registry, 4)
    registry.start_game(room.room_id)
    registry.discard_tile(room.room_id, "p0", 0)

    for turn in range(40):
        player_id = room.players[room.turn_index].id
        source = "discard" if turn % 3 == 0 else "deck"
        registry.draw_tile(room.room_id, player_id, source)
        registry.discard_tile(room.room_id, player_id, turn % DEALER_HAND_SIZE)
        assert_conserved(room)
        assert sum(p.hand_size for p in room.players) == DEALER_HAND_SIZE + HAND_SIZE * 3 - 1


class TestQueries:
    def test_room_of(self, registry):
        room = seat_humans(registry, 2)
        assert registry.room_of("p1") is room
        assert registry.room_of("ghost") is None

    def test_list_rooms_only_waiting(self, registry):
        waiting = registry.create_room("a", "A")
        started = seat_humans(registry, 2)
        registry.start_game(started.room_id)

        assert registry.list_rooms() == [waiting]

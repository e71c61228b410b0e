"""Typed domain exceptions for rejected room operations.

Every rule violation raised by the room registry is a subclass of RoomError
and carries an ErrorCode tag. Errors are raised before any state is touched,
so a rejected operation never leaves a room half-mutated. The message router
catches RoomError at the transport boundary and converts it to an error
message for the caller.
"""

from okey.logic.enums import ErrorCode


class RoomError(Exception):
    """Base exception for room and game rule violations."""

    code: ErrorCode

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code.value.replace("_", " ").capitalize())

    @property
    def message(self) -> str:
        return str(self)


class RoomNotFoundError(RoomError):
    code = ErrorCode.ROOM_NOT_FOUND


class RoomFullError(RoomError):
    code = ErrorCode.ROOM_FULL


class GameAlreadyStartedError(RoomError):
    code = ErrorCode.GAME_ALREADY_STARTED


class GameNotActiveError(RoomError):
    code = ErrorCode.GAME_NOT_ACTIVE


class NotEnoughPlayersError(RoomError):
    code = ErrorCode.NOT_ENOUGH_PLAYERS


class AlreadyInRoomError(RoomError):
    code = ErrorCode.ALREADY_IN_ROOM


class NotInRoomError(RoomError):
    code = ErrorCode.NOT_IN_ROOM


class NotYourTurnError(RoomError):
    code = ErrorCode.NOT_YOUR_TURN


class AlreadyDrewError(RoomError):
    code = ErrorCode.ALREADY_DREW


class MustDrawBeforeDiscardError(RoomError):
    code = ErrorCode.MUST_DRAW_BEFORE_DISCARD


class DeckEmptyError(RoomError):
    code = ErrorCode.DECK_EMPTY


class DiscardPileEmptyError(RoomError):
    code = ErrorCode.DISCARD_PILE_EMPTY


class InvalidSourceError(RoomError):
    code = ErrorCode.INVALID_SOURCE


class InvalidHandIndexError(RoomError):
    code = ErrorCode.INVALID_HAND_INDEX

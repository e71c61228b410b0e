"""Storage abstraction for live rooms.

The registry only talks to the RoomStore protocol, so tests can swap in a
double and a different backing store can be added without touching game
rules. The in-memory store is the only implementation: rooms do not survive
a process restart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from okey.logic.enums import GameState

if TYPE_CHECKING:
    from okey.session.models import Room


class RoomStore(Protocol):
    """Protocol for keeping rooms by code."""

    def get(self, room_id: str) -> Room | None: ...

    def put(self, room: Room) -> None: ...

    def delete(self, room_id: str) -> Room | None: ...

    def list_public(self) -> list[Room]: ...

    def all(self) -> list[Room]: ...


class InMemoryRoomStore:
    """Process-wide room map: room code -> Room."""

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def put(self, room: Room) -> None:
        self._rooms[room.room_id] = room

    def delete(self, room_id: str) -> Room | None:
        return self._rooms.pop(room_id, None)

    def list_public(self) -> list[Room]:
        """Rooms still accepting players, in creation order."""
        return [room for room in self._rooms.values() if room.game_state == GameState.WAITING]

    def all(self) -> list[Room]:
        return list(self._rooms.values())

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

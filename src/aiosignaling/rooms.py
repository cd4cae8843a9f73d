import logging
import time
from collections import OrderedDict
from typing import Any, Optional

from .exceptions import RoomFull
from .utils import random_string

logger = logging.getLogger(__name__)

ROOM_CAPACITY = 2
LOBBY_PREFIX = "lobby-"


class Room:
    """
    A signaling session between at most two connections.
    """

    def __init__(self, room_id: str, lobby: bool = False) -> None:
        self.id = room_id
        self.created_at = time.time()
        self.lobby = lobby
        self.members: list[str] = []

    @property
    def full(self) -> bool:
        return len(self.members) >= ROOM_CAPACITY

    def other(self, connection_id: str) -> Optional[str]:
        for member in self.members:
            if member != connection_id:
                return member
        return None

    def __repr__(self) -> str:
        return "Room(%s)" % self.id


class RoomManager:
    """
    Maps connections to rooms and enforces membership rules.

    Every method runs to completion without yielding to the event loop, so
    concurrent joins and leaves on the same room are serialized.
    """

    def __init__(self, notifier: Any) -> None:
        self.notifier = notifier
        self._rooms: dict[str, Room] = {}
        self._membership: dict[str, str] = {}
        # lobby rooms with a single member, oldest first
        self._waiting: "OrderedDict[str, Room]" = OrderedDict()

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def room_of(self, connection_id: str) -> Optional[str]:
        return self._membership.get(connection_id)

    def peer_of(self, connection_id: str) -> Optional[str]:
        room_id = self._membership.get(connection_id)
        if room_id is None:
            return None
        return self._rooms[room_id].other(connection_id)

    def join(self, connection_id: str, room_id: Optional[str] = None) -> str:
        """
        Place a connection in a room and return the room's identifier.

        Without a `room_id` the connection is paired in arrival order with
        the oldest lobby room waiting for a partner, or a new lobby room is
        created. A connection already in another room leaves it first.

        Raises :class:`~aiosignaling.exceptions.RoomFull` if the room already
        has two members, leaving the connection's membership unchanged.
        """
        current = self._membership.get(connection_id)

        if room_id is None:
            if current is not None and self._rooms[current].lobby:
                return current
            room = self._next_waiting_room()
        else:
            if current == room_id:
                return room_id
            room = self._rooms.get(room_id)
            if room is not None and room.full:
                raise RoomFull(room_id)

        if current is not None:
            self.leave(connection_id)

        if room is None:
            room = self._create_room(room_id)
        self._add_member(room, connection_id)
        return room.id

    def leave(self, connection_id: str) -> Optional[str]:
        """
        Remove a connection from its room and return the room's identifier.

        The remaining member, if any, is notified. Does nothing if the
        connection is not in a room.
        """
        room_id = self._membership.pop(connection_id, None)
        if room_id is None:
            return None

        room = self._rooms[room_id]
        room.members.remove(connection_id)
        logger.info("%s member %s left", repr(room), connection_id)

        if not room.members:
            del self._rooms[room_id]
            self._waiting.pop(room_id, None)
            logger.info("%s closed", repr(room))
        else:
            if room.lobby:
                self._waiting[room_id] = room
            self.notifier.on_leave(room, connection_id, room.members[0])
        return room_id

    def _add_member(self, room: Room, connection_id: str) -> None:
        assert not room.full, "room %s is full" % room.id
        room.members.append(connection_id)
        self._membership[connection_id] = room.id
        logger.info("%s member %s joined (%d members)",
                    repr(room), connection_id, len(room.members))

        if room.full:
            self._waiting.pop(room.id, None)
            self.notifier.on_peer_join(room)
        else:
            if room.lobby:
                self._waiting[room.id] = room
            self.notifier.on_join(room, connection_id)

    def _create_room(self, room_id: Optional[str]) -> Room:
        if room_id is None:
            room_id = LOBBY_PREFIX + random_string(8)
            while room_id in self._rooms:
                room_id = LOBBY_PREFIX + random_string(8)
            room = Room(room_id, lobby=True)
        else:
            room = Room(room_id)
        self._rooms[room_id] = room
        logger.info("%s created", repr(room))
        return room

    def _next_waiting_room(self) -> Optional[Room]:
        while self._waiting:
            _, room = self._waiting.popitem(last=False)
            if self._rooms.get(room.id) is room and not room.full:
                return room
        return None

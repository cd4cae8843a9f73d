from typing import Optional


class SignalingError(Exception):
    #: Value of the ``error`` field when reported to a client.
    code = "error"


class ConnectionClosed(SignalingError):
    code = "connection-closed"

    def __init__(self, connection_id: str, reason: str = "not open") -> None:
        self.connection_id = connection_id
        self.reason = reason

    def __str__(self) -> str:
        return "Connection %s is closed (%s)" % (self.connection_id, self.reason)


class RoomFull(SignalingError):
    code = "room-full"

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id

    def __str__(self) -> str:
        return "Room %s is full" % self.room_id


class NoPeer(SignalingError):
    code = "no-peer"

    def __init__(self, room_id: Optional[str] = None) -> None:
        self.room_id = room_id

    def __str__(self) -> str:
        if self.room_id is None:
            return "Not in a room"
        return "No peer in room %s" % self.room_id


class MalformedEnvelope(SignalingError, ValueError):
    code = "malformed"

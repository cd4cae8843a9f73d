import logging
from typing import TYPE_CHECKING

from .envelope import Envelope, Kind, error_envelope
from .exceptions import ConnectionClosed, NoPeer, RoomFull
from .registry import Registry

if TYPE_CHECKING:
    from .rooms import Room

logger = logging.getLogger(__name__)


class LifecycleNotifier:
    """
    Emits control envelopes in reaction to membership changes.

    Each event results in one kind of envelope, sent only to the
    connections it concerns. If `broadcast_disconnect` is set, departures
    are announced to every other connection instead, the way single-room
    signaling servers do.
    """

    def __init__(self, registry: Registry, broadcast_disconnect: bool = False) -> None:
        self.registry = registry
        self.broadcast_disconnect = broadcast_disconnect

    def on_join(self, room: "Room", connection_id: str) -> None:
        self._send(connection_id, Envelope(Kind.JOINED, {"room": room.id}))

    def on_peer_join(self, room: "Room") -> None:
        for member in room.members:
            self._send(
                member,
                Envelope(Kind.PEER_JOINED, {"room": room.id, "peer": room.other(member)}),
            )

    def on_leave(self, room: "Room", departed_id: str, remaining_id: str) -> None:
        if self.broadcast_disconnect:
            self.registry.broadcast_except(departed_id, Envelope(Kind.PEER_DISCONNECTED))
            return

        kind = Kind.PEER_DISCONNECTED if room.lobby else Kind.PEER_LEFT
        self._send(remaining_id, Envelope(kind, {"room": room.id, "peer": departed_id}))

    def on_room_full(self, connection_id: str, exc: RoomFull) -> None:
        self._send(connection_id, error_envelope(exc, room=exc.room_id))

    def on_no_peer(self, connection_id: str, exc: NoPeer) -> None:
        fields = {}
        if exc.room_id is not None:
            fields["room"] = exc.room_id
        self._send(connection_id, error_envelope(exc, **fields))

    def _send(self, connection_id: str, envelope: Envelope) -> None:
        try:
            self.registry.send(connection_id, envelope)
        except ConnectionClosed as exc:
            logger.info("Dropped %s: %s", repr(envelope), exc)

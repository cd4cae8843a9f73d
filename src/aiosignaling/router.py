import logging

from .envelope import Envelope
from .exceptions import ConnectionClosed, NoPeer
from .notifier import LifecycleNotifier
from .registry import Registry
from .rooms import RoomManager

logger = logging.getLogger(__name__)


class Router:
    """
    Forwards signaling envelopes to the other member of the sender's room.
    """

    def __init__(
        self, registry: Registry, rooms: RoomManager, notifier: LifecycleNotifier
    ) -> None:
        self.registry = registry
        self.rooms = rooms
        self.notifier = notifier

    def route(self, sender_id: str, envelope: Envelope) -> bool:
        """
        Route `envelope` from `sender_id` and return whether it was queued
        for delivery.

        Without a peer, the sender receives a ``no-peer`` error and the
        envelope is dropped. The payload is forwarded untouched, tagged with
        the sender's identifier.
        """
        peer_id = self.rooms.peer_of(sender_id)
        if peer_id is None:
            exc = NoPeer(self.rooms.room_of(sender_id))
            logger.debug("Dropped %s from %s: %s", repr(envelope), sender_id, exc)
            self.notifier.on_no_peer(sender_id, exc)
            return False

        forwarded = Envelope(envelope.kind, envelope.payload, sender=sender_id)
        try:
            self.registry.send(peer_id, forwarded)
        except ConnectionClosed as exc:
            logger.info("Dropped %s from %s: %s", repr(envelope), sender_id, exc)
            return False

        logger.debug("Routed %s %s -> %s", repr(envelope), sender_id, peer_id)
        return True

import logging

from .envelope import Envelope, Kind
from .exceptions import ConnectionClosed, MalformedEnvelope, NoPeer, RoomFull
from .registry import ConnectionState, Registry
from .rooms import Room, RoomManager
from .server import SignalingServer

__all__ = [
    "ConnectionClosed",
    "ConnectionState",
    "Envelope",
    "Kind",
    "MalformedEnvelope",
    "NoPeer",
    "Registry",
    "Room",
    "RoomFull",
    "RoomManager",
    "SignalingServer",
]
__version__ = "0.1.0"

# Set default logging handler to avoid "No handler found" warnings.
logging.getLogger(__name__).addHandler(logging.NullHandler())

import enum
import json
from typing import Any, Optional, Union

from .exceptions import MalformedEnvelope


class Kind(enum.Enum):
    CONNECTED = "connected"
    JOIN = "join"
    JOINED = "joined"
    PEER_JOINED = "peer-joined"
    OFFER = "offer"
    ANSWER = "answer"
    CANDIDATE = "candidate"
    PEER_LEFT = "peer-left"
    PEER_DISCONNECTED = "peer-disconnected"
    ERROR = "error"


#: Kinds relayed verbatim between the members of a room, in lookup order.
SIGNALING_KINDS = (Kind.OFFER, Kind.ANSWER, Kind.CANDIDATE)


class Envelope:
    """
    A single unit of signaling traffic.

    Signaling envelopes (offer, answer, candidate) carry an opaque payload
    which is never inspected. All other kinds are control messages whose
    payload is a dict of fields merged next to the ``type`` field.
    """

    def __init__(
        self, kind: Kind, payload: Any = None, sender: Optional[str] = None
    ) -> None:
        self.kind = kind
        self.payload = payload
        self.sender = sender

    @classmethod
    def parse(cls, data: Union[str, bytes]) -> "Envelope":
        """
        Parse an inbound message.

        Raises :class:`~aiosignaling.exceptions.MalformedEnvelope` if the
        message is not one of the accepted shapes:

        .. code-block:: python

           Envelope.parse('{"type": "join", "room": "r1"}')
           Envelope.parse('{"offer": {"type": "offer", "sdp": "..."}}')
        """
        try:
            message = json.loads(data)
        except (RecursionError, ValueError) as exc:
            raise MalformedEnvelope("Invalid JSON: %s" % exc) from exc

        if not isinstance(message, dict):
            raise MalformedEnvelope("Message is not an object")

        if message.get("type") == Kind.JOIN.value:
            room = message.get("room")
            if room is not None and (not isinstance(room, str) or not room):
                raise MalformedEnvelope("Room must be a non-empty string")
            return cls(Kind.JOIN, {"room": room})

        # any client supplied "from" is discarded here
        for kind in SIGNALING_KINDS:
            if kind.value in message:
                return cls(kind, message[kind.value])

        raise MalformedEnvelope("Unknown message shape")

    @property
    def is_signaling(self) -> bool:
        return self.kind in SIGNALING_KINDS

    def to_dict(self) -> dict[str, Any]:
        if self.is_signaling:
            message = {self.kind.value: self.payload}
            if self.sender is not None:
                message["from"] = self.sender
            return message

        message = {"type": self.kind.value}
        if self.payload:
            message.update(self.payload)
        return message

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __repr__(self) -> str:
        return "Envelope(%s)" % self.kind.value


def error_envelope(exc: Exception, **fields: Any) -> Envelope:
    """
    Build an ``error`` envelope reporting `exc` to a client.
    """
    payload = {"error": getattr(exc, "code", "error"), "message": str(exc)}
    payload.update(fields)
    return Envelope(Kind.ERROR, payload)

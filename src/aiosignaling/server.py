import asyncio
import logging
import socket
from typing import Any, Optional, Union

import netifaces
import websockets
from websockets.asyncio.server import Server, ServerConnection, serve

from .envelope import Envelope, Kind
from .exceptions import MalformedEnvelope, RoomFull
from .notifier import LifecycleNotifier
from .registry import CLOSE_POLICY_VIOLATION, MAX_QUEUE, Registry
from .rooms import RoomManager
from .router import Router

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
MAX_MESSAGE_SIZE = 65536
PING_INTERVAL = 20.0
CLOSE_TIMEOUT = 5.0

WILDCARD_HOSTS = ("", "0.0.0.0", "::")


def get_host_addresses(use_ipv4: bool, use_ipv6: bool) -> list[str]:
    """
    Get local IP addresses.
    """
    addresses = []
    for interface in netifaces.interfaces():
        ifaddresses = netifaces.ifaddresses(interface)
        for address in ifaddresses.get(socket.AF_INET, []):
            if use_ipv4 and address["addr"] != "127.0.0.1":
                addresses.append(address["addr"])
        for address in ifaddresses.get(socket.AF_INET6, []):
            if use_ipv6 and address["addr"] != "::1" and "%" not in address["addr"]:
                addresses.append(address["addr"])
    return addresses


class SignalingServer:
    """
    A WebSocket signaling relay pairing clients into rooms of two.

    :param host: The address to listen on.
    :param port: The port to listen on, 0 picks a free port.
    :param join_timeout: Close connections which have not joined a room
                         after this many seconds. Disabled if `None`.
    :param auto_lobby: Place every new connection in the lobby, for clients
                       which never send a ``join`` message.
    :param broadcast_disconnect: Announce departures to every connection
                                 rather than to the room's remaining member.
    :param max_queue: The number of envelopes which may be queued for a
                      connection before it is considered dead.
    :param max_message_size: The maximum size of an inbound message.
    :param ping_interval: The interval between keepalive pings, or `None`.
    :param close_timeout: How long to wait for pending envelopes and
                          closing handshakes on shutdown.
    :param use_ipv4: Whether to advertise IPv4 addresses.
    :param use_ipv6: Whether to advertise IPv6 addresses.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        join_timeout: Optional[float] = None,
        auto_lobby: bool = False,
        broadcast_disconnect: bool = False,
        max_queue: int = MAX_QUEUE,
        max_message_size: int = MAX_MESSAGE_SIZE,
        ping_interval: Optional[float] = PING_INTERVAL,
        close_timeout: float = CLOSE_TIMEOUT,
        use_ipv4: bool = True,
        use_ipv6: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.join_timeout = join_timeout
        self.auto_lobby = auto_lobby
        self.max_message_size = max_message_size
        self.ping_interval = ping_interval
        self.close_timeout = close_timeout

        self.registry = Registry(max_queue=max_queue)
        self.notifier = LifecycleNotifier(
            self.registry, broadcast_disconnect=broadcast_disconnect
        )
        self.rooms = RoomManager(self.notifier)
        self.router = Router(self.registry, self.rooms, self.notifier)

        self._server: Optional[Server] = None
        self._use_ipv4 = use_ipv4
        self._use_ipv6 = use_ipv6

    @property
    def address(self) -> tuple[str, int]:
        """
        The address the server is listening on.
        """
        assert self._server is not None, "server is not listening"
        sockname = self._server.sockets[0].getsockname()
        return (sockname[0], sockname[1])

    async def listen(self) -> None:
        """
        Start accepting connections.
        """
        self._server = await serve(
            self.handle,
            self.host,
            self.port,
            max_size=self.max_message_size,
            ping_interval=self.ping_interval,
            close_timeout=self.close_timeout,
        )

        host, port = self.address
        if self.host in WILDCARD_HOSTS:
            hosts = get_host_addresses(use_ipv4=self._use_ipv4, use_ipv6=self._use_ipv6)
        else:
            hosts = [host]
        for addr in hosts:
            if ":" in addr:
                addr = "[%s]" % addr
            logger.info("Listening on ws://%s:%d", addr, port)

    async def close(self) -> None:
        """
        Deliver pending envelopes, then close every connection and stop
        listening.
        """
        if self._server is None:
            return

        try:
            await asyncio.wait_for(self.registry.flush(), self.close_timeout)
        except asyncio.TimeoutError:
            logger.warning("Pending envelopes not delivered before shutdown")

        self._server.close()
        await self._server.wait_closed()
        self._server = None

    async def serve_forever(self) -> None:
        await self.listen()
        try:
            await asyncio.Future()
        finally:
            await self.close()

    async def handle(self, websocket: ServerConnection) -> None:
        """
        Handle one connection, from accept to close.
        """
        connection_id = self.connect(websocket)
        timeout_handle = None
        if self.join_timeout is not None:
            timeout_handle = asyncio.get_running_loop().call_later(
                self.join_timeout, self.expire, connection_id
            )

        try:
            async for message in websocket:
                self.dispatch(connection_id, message)
        except websockets.ConnectionClosedError as exc:
            logger.info("Connection %s lost: %s", connection_id, exc)
        finally:
            if timeout_handle is not None:
                timeout_handle.cancel()
            self.disconnect(connection_id)

    def connect(self, transport: Any) -> str:
        """
        Register a transport and, in lobby mode, place it in the lobby.
        """
        connection_id = self.registry.register(transport)
        if self.auto_lobby:
            self.join(connection_id, None)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """
        Remove a connection from its room and from the registry.
        """
        self.rooms.leave(connection_id)
        self.registry.unregister(connection_id)

    def dispatch(self, connection_id: str, data: Union[str, bytes]) -> None:
        """
        Handle one inbound message.
        """
        if not self.registry.is_open(connection_id):
            logger.debug("Connection %s is not open, message dropped", connection_id)
            return

        try:
            envelope = Envelope.parse(data)
        except MalformedEnvelope as exc:
            logger.debug("Connection %s sent a malformed message: %s", connection_id, exc)
            return

        if envelope.kind == Kind.JOIN:
            self.join(connection_id, envelope.payload["room"])
        else:
            self.router.route(connection_id, envelope)

    def join(self, connection_id: str, room_id: Optional[str]) -> Optional[str]:
        try:
            return self.rooms.join(connection_id, room_id)
        except RoomFull as exc:
            logger.info("Connection %s rejected: %s", connection_id, exc)
            self.notifier.on_room_full(connection_id, exc)
            return None

    def expire(self, connection_id: str) -> None:
        """
        Close a connection if it has not joined a room yet.
        """
        if self.rooms.room_of(connection_id) is None:
            self.registry.close(connection_id, CLOSE_POLICY_VIOLATION, "join timeout")

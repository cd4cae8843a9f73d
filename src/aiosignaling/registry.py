import asyncio
import enum
import logging
from typing import Any, Optional

import websockets

from .envelope import Envelope, Kind
from .exceptions import ConnectionClosed
from .utils import random_id

logger = logging.getLogger(__name__)

MAX_QUEUE = 64

# close codes, see RFC 6455 - 7.4.1. Defined Status Codes
CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008


class ConnectionState(enum.Enum):
    OPEN = 0
    CLOSING = 1
    CLOSED = 2


class Connection:
    """
    A live transport session, as tracked by the :class:`Registry`.
    """

    def __init__(self, connection_id: str, transport: Any, max_queue: int) -> None:
        self.id = connection_id
        self.state = ConnectionState.OPEN
        self.transport = transport

        self._queue: asyncio.Queue[Envelope] = asyncio.Queue(maxsize=max_queue)
        self._writer: Optional[asyncio.Task[None]] = None

    def __repr__(self) -> str:
        return "Connection(%s)" % self.id


class Registry:
    """
    Tracks live connections and owns their transports.

    A transport is any object with ``send(str)`` and ``close(code, reason)``
    coroutines, such as a :class:`websockets.asyncio.server.ServerConnection`.
    Envelopes are written by one writer task per connection, so sending
    never waits for the remote side and delivery to a connection is FIFO.
    """

    def __init__(self, max_queue: int = MAX_QUEUE) -> None:
        self.max_queue = max_queue
        self._connections: dict[str, Connection] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def register(self, transport: Any) -> str:
        """
        Register a newly accepted transport and return its identifier.

        The connection is sent a ``connected`` notice containing its
        identifier and the total number of connections.
        """
        connection_id = random_id()
        while connection_id in self._connections:
            connection_id = random_id()

        connection = Connection(connection_id, transport, self.max_queue)
        connection._writer = asyncio.ensure_future(self._run_writer(connection))
        self._connections[connection_id] = connection
        self.__log_info(connection, "registered (%d connections)", len(self))

        self.send(
            connection_id,
            Envelope(Kind.CONNECTED, {"id": connection_id, "clientCount": len(self)}),
        )
        return connection_id

    def unregister(self, connection_id: str) -> None:
        """
        Forget a connection and release its transport.

        Calling this for an unknown connection does nothing.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return

        connection.state = ConnectionState.CLOSED
        if connection._writer is not None:
            connection._writer.cancel()
            connection._writer = None
        while not connection._queue.empty():
            connection._queue.get_nowait()
            connection._queue.task_done()
        connection.transport = None
        self.__log_info(connection, "unregistered (%d connections)", len(self))

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def state(self, connection_id: str) -> ConnectionState:
        connection = self._connections.get(connection_id)
        if connection is None:
            return ConnectionState.CLOSED
        return connection.state

    def is_open(self, connection_id: str) -> bool:
        return self.state(connection_id) == ConnectionState.OPEN

    def send(self, connection_id: str, envelope: Envelope) -> None:
        """
        Queue an envelope for delivery to a connection.

        Raises :class:`~aiosignaling.exceptions.ConnectionClosed` if the
        connection is not open, or if its outbound queue is full, in which
        case the connection is closed.
        """
        connection = self._connections.get(connection_id)
        if connection is None or connection.state != ConnectionState.OPEN:
            raise ConnectionClosed(connection_id)

        try:
            connection._queue.put_nowait(envelope)
        except asyncio.QueueFull:
            self.__log_info(connection, "outbound queue full, closing")
            self.close(connection_id, CLOSE_POLICY_VIOLATION, "outbound queue full")
            raise ConnectionClosed(connection_id, "outbound queue full")

    def broadcast_except(self, exclude_id: Optional[str], envelope: Envelope) -> int:
        """
        Send an envelope to every open connection except `exclude_id`.

        Returns the number of connections the envelope was queued for.
        """
        count = 0
        for connection_id in list(self._connections):
            if connection_id == exclude_id or not self.is_open(connection_id):
                continue
            try:
                self.send(connection_id, envelope)
                count += 1
            except ConnectionClosed as exc:
                logger.info("Broadcast skipped: %s", exc)
        return count

    def close(
        self, connection_id: str, code: int = CLOSE_NORMAL, reason: str = ""
    ) -> None:
        """
        Close a connection from the server side.

        The connection stops accepting envelopes immediately, the transport
        is closed asynchronously and the connection handler is expected to
        call :meth:`unregister` once the transport is gone.
        """
        connection = self._connections.get(connection_id)
        if connection is None or connection.state != ConnectionState.OPEN:
            return

        connection.state = ConnectionState.CLOSING
        self.__log_info(connection, "closing (%d %s)", code, reason)
        task = asyncio.ensure_future(connection.transport.close(code, reason))
        self._tasks.add(task)
        task.add_done_callback(self._close_done)

    async def flush(self) -> None:
        """
        Wait until every queued envelope has been written.
        """
        await asyncio.gather(
            *[c._queue.join() for c in list(self._connections.values())]
        )

    def _close_done(self, task: "asyncio.Task[None]") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.info("Transport close failed: %s", task.exception())

    async def _run_writer(self, connection: Connection) -> None:
        queue = connection._queue
        while True:
            envelope = await queue.get()
            try:
                if connection.state == ConnectionState.OPEN:
                    self.__log_debug(connection, "> %s", repr(envelope))
                    await connection.transport.send(envelope.to_json())
            except (websockets.ConnectionClosed, OSError) as exc:
                self.__log_info(connection, "write failed: %s", exc)
                self.close(connection.id, CLOSE_NORMAL, "write failed")
            finally:
                queue.task_done()

    def __log_debug(self, connection: Connection, msg: str, *args: Any) -> None:
        logger.debug(repr(connection) + " " + msg, *args)

    def __log_info(self, connection: Connection, msg: str, *args: Any) -> None:
        logger.info(repr(connection) + " " + msg, *args)

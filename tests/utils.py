import asyncio
import functools
import json
import logging
import os
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec

from aiosignaling.registry import Registry

P = ParamSpec("P")


def asynctest(
    coro: Callable[P, Coroutine[None, None, None]],
) -> Callable[P, None]:
    @functools.wraps(coro)
    def wrap(*args: P.args, **kwargs: P.kwargs) -> None:
        asyncio.run(coro(*args, **kwargs))

    return wrap


class DummyTransport:
    """
    An in-memory stand-in for a websocket connection.
    """

    def __init__(
        self, fail: bool = False, close_error: Exception | None = None
    ) -> None:
        self.close_error = close_error
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.closed = False
        self.fail = fail
        self.sent: list[str] = []

    async def send(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("connection reset by peer")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True
        self.close_code = code
        self.close_reason = reason

    @property
    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(data) for data in self.sent]

    def pop_messages(self) -> list[dict[str, Any]]:
        messages = self.messages
        self.sent.clear()
        return messages


async def register(registry: Registry, count: int) -> list[tuple[str, DummyTransport]]:
    """
    Register `count` dummy transports, discarding their ``connected`` notices.
    """
    connections = []
    for i in range(count):
        transport = DummyTransport()
        connections.append((registry.register(transport), transport))
    await registry.flush()
    for _, transport in connections:
        transport.sent.clear()
    return connections


if os.environ.get("AIOSIGNALING_DEBUG"):
    logging.basicConfig(level=logging.DEBUG)

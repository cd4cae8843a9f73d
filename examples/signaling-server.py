#!/usr/bin/env python
#
# Multi-room websocket server to perform signaling.
#

import argparse
import asyncio
import logging

from aiosignaling import SignalingServer
from aiosignaling.server import DEFAULT_HOST, DEFAULT_PORT

parser = argparse.ArgumentParser(description="WebRTC signaling server")
parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
parser.add_argument(
    "--join-timeout",
    type=float,
    help="close connections which have not joined a room after this many seconds",
)
parser.add_argument(
    "--lobby",
    action="store_true",
    help="pair clients in arrival order without waiting for a join message",
)
parser.add_argument(
    "--broadcast-disconnect",
    action="store_true",
    help="announce departures to every connected client",
)
parser.add_argument("--ipv6", action="store_true", help="advertise IPv6 addresses")
parser.add_argument("--verbose", "-v", action="count")
args = parser.parse_args()

logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

server = SignalingServer(
    host=args.host,
    port=args.port,
    join_timeout=args.join_timeout,
    auto_lobby=args.lobby,
    broadcast_disconnect=args.broadcast_disconnect,
    use_ipv6=args.ipv6,
)

try:
    asyncio.run(server.serve_forever())
except KeyboardInterrupt:
    pass

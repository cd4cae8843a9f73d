#!/usr/bin/env python

import argparse
import asyncio
import json
import logging

from websockets.asyncio.client import connect

WEBSOCKET_URI = "ws://127.0.0.1:8080"


async def offer(websocket):
    # wait for the answering side
    async for raw in websocket:
        message = json.loads(raw)
        print("received", message)
        if message.get("type") == "peer-joined":
            break

    await websocket.send(json.dumps({"offer": {"type": "offer", "sdp": "v=0"}}))

    async for raw in websocket:
        message = json.loads(raw)
        print("received", message)
        if "answer" in message:
            break


async def answer(websocket):
    async for raw in websocket:
        message = json.loads(raw)
        print("received", message)
        if "offer" in message:
            break

    await websocket.send(json.dumps({"answer": {"type": "answer", "sdp": "v=0"}}))


async def run(options):
    async with connect(options.uri) as websocket:
        print("received", json.loads(await websocket.recv()))
        await websocket.send(json.dumps({"type": "join", "room": options.room}))

        if options.action == "offer":
            await offer(websocket)
        else:
            await answer(websocket)


parser = argparse.ArgumentParser(description="Signaling room tester")
parser.add_argument("action", choices=["offer", "answer"])
parser.add_argument("--room", default="test")
parser.add_argument("--uri", default=WEBSOCKET_URI)
parser.add_argument("--verbose", "-v", action="count")
options = parser.parse_args()

if options.verbose:
    logging.basicConfig(level=logging.DEBUG)

asyncio.run(run(options))

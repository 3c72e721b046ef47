"""Shared helpers for Unfolded Circle Remote tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import json
from typing import Any

from aiohttp import WSMsgType, web

ENTRY_ID = "entry"

KITCHEN = {
    "entity_id": "uc.main.kitchen",
    "entity_type": "activity",
    "name": {"de_DE": "Küche", "en_US": "Kitchen"},
    "attributes": {"state": "OFF"},
}
MOVIE = {
    "entity_id": "uc.main.movie",
    "entity_type": "activity",
    "name": {"en_US": "Watch a movie"},
    "attributes": {"state": "ON"},
}


def entities_response(entities: list[dict[str, Any]], req_id: int = 0) -> dict[str, Any]:
    """Build the response to a get_entities request."""
    return {
        "kind": "resp",
        "req_id": req_id,
        "code": 200,
        "msg": "entities",
        "msg_data": {"entities": entities},
    }


def activity_change(entity_id: str, state: str) -> dict[str, Any]:
    """Build an activity change event."""
    return {
        "kind": "event",
        "msg": "entity_change",
        "cat": "ENTITY",
        "msg_data": {
            "entity_type": "activity",
            "entity_id": entity_id,
            "event_type": "CHANGE",
            "new_state": {"attributes": {"state": state}},
        },
    }


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Wait until ``predicate`` returns True."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


class FakeRemote:
    """WebSocket endpoint standing in for the remote's core API."""

    def __init__(self) -> None:
        self.connections = 0
        self.headers: list[dict[str, str]] = []
        self.received: list[dict[str, Any]] = []
        self.sockets: list[web.WebSocketResponse] = []
        self.entities: list[dict[str, Any]] = [KITCHEN, MOVIE]
        self.host = ""
        self.port = 0
        self.url = ""

    def messages(self, msg: str) -> list[dict[str, Any]]:
        """Return the received requests named ``msg``."""
        return [item for item in self.received if item.get("msg") == msg]

    async def send(self, payload: dict[str, Any] | str) -> None:
        """Push a frame to the most recent client."""
        ws = self.sockets[-1]
        if isinstance(payload, str):
            await ws.send_str(payload)
        else:
            await ws.send_json(payload)

    async def close_clients(self) -> None:
        """Close every open client socket from the server side."""
        for ws in self.sockets:
            if not ws.closed:
                await ws.close()

    async def handler(self, request: web.Request) -> web.WebSocketResponse:
        """Accept a client and answer get_entities requests."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.connections += 1
        self.headers.append(dict(request.headers))
        self.sockets.append(ws)

        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            data = json.loads(msg.data)
            self.received.append(data)
            if data.get("msg") == "get_entities":
                await ws.send_json(entities_response(self.entities, data.get("id", 0)))
        return ws

"""WebSocket fan-out for board view messages.

Protocol (client -> server):
    {"type": "ready"}
    {"type": "command", "name": "addTask", "payload": {...}}
    {"type": "ping"}

Protocol (server -> client):
    every view message (``boardUpdate``, ``parseWarning``, ``parseError``,
    ``notice``), plus ``{"type": "commandResult", ...}`` and
    ``{"type": "pong"}`` replies to the sending client only.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger

MessageHandler = Callable[[WebSocket, dict[str, Any]], Awaitable[None]]


@dataclass
class _Client:
    ws: WebSocket
    connected_at: float = field(default_factory=time.time)
    sent: int = 0


class ViewHub:
    """Central hub that pushes view messages to every connected client.

    Usage::

        hub = ViewHub()

        # In a FastAPI WebSocket endpoint:
        await hub.handle_connection(websocket, on_message)

        # From synchronous session callbacks:
        hub.publish_sync({"type": "boardUpdate", "board": {...}})
    """

    def __init__(self) -> None:
        self._clients: dict[int, _Client] = {}  # id(ws) -> client
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def handle_connection(self, websocket: WebSocket, on_message: MessageHandler) -> None:
        """Accept a WebSocket connection and run its read loop until it closes."""
        await websocket.accept()
        cid = id(websocket)
        self._clients[cid] = _Client(ws=websocket)
        logger.debug("View hub: client connected (total={})", self.client_count)
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    logger.debug("View hub: ignoring non-JSON message")
                    continue
                if not isinstance(msg, dict):
                    continue
                if msg.get("type") == "ping":
                    await self.send_to(websocket, {"type": "pong"})
                    continue
                await on_message(websocket, msg)
        except WebSocketDisconnect:
            pass
        finally:
            self._clients.pop(cid, None)
            logger.debug("View hub: client disconnected (total={})", self.client_count)

    async def broadcast(self, message: dict[str, Any]) -> None:
        payload = json.dumps(message, default=str)
        stale: list[int] = []
        for cid, client in list(self._clients.items()):
            try:
                await client.ws.send_text(payload)
                client.sent += 1
            except (RuntimeError, WebSocketDisconnect) as exc:
                logger.debug("View hub: dropping client: {}", exc)
                stale.append(cid)
        for cid in stale:
            self._clients.pop(cid, None)

    def publish_sync(self, message: dict[str, Any]) -> None:
        """Fire-and-forget broadcast from synchronous code on the event loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("View hub: no running loop, dropping {}", message.get("type"))
            return
        task = loop.create_task(self.broadcast(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def send_to(self, websocket: WebSocket, message: dict[str, Any]) -> None:
        try:
            await websocket.send_text(json.dumps(message, default=str))
        except (RuntimeError, WebSocketDisconnect) as exc:
            logger.debug("View hub: send failed: {}", exc)

    async def drain(self) -> None:
        """Wait for scheduled broadcasts to go out."""
        pending = set(self._tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

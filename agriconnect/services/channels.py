from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, Optional
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger

EventPayload = dict[str, Any]
EventHandler = Callable[['ChatConnection', EventPayload], Awaitable[None]]


class ChatConnection:
    """One socket session. Holds nothing but its id, socket and in-flight work."""

    def __init__(self, websocket: WebSocket) -> None:
        self.id = uuid4().hex
        self.websocket = websocket
        self.closed = False
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    async def emit(self, event: str, data: Any) -> bool:
        """Send one event frame. Returns False once the peer has gone away."""
        if self.closed:
            logger.debug("Dropping {} for closed connection {}", event, self.id)
            return False
        try:
            async with self._send_lock:
                await self.websocket.send_json({'event': event, 'data': data})
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.warning("Send to {} failed, marking closed: {!r}", self.id, exc)
            self.closed = True
            return False
        return True

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Event task failed on connection {}", self.id)

    @property
    def pending(self) -> int:
        return len(self._tasks)


class ChannelHub:
    """Membership of a shared room. Only touched from the event loop, so no lock."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._members: dict[str, ChatConnection] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, connection: ChatConnection) -> bool:
        return connection.id in self._members

    def join(self, connection: ChatConnection) -> None:
        self._members[connection.id] = connection

    def leave(self, connection: ChatConnection) -> None:
        self._members.pop(connection.id, None)

    async def broadcast(self, event: str, data: Any) -> int:
        delivered = 0
        for connection in list(self._members.values()):
            if not await connection.emit(event, data):
                logger.warning("Dropping {} member {}", self.name, connection.id)
                self.leave(connection)
                continue
            delivered += 1
        return delivered


class ChannelHandler:
    """Socket session loop shared by the chat channels.

    Each inbound event runs as its own task, so a slow reply never blocks the
    next frame from the same connection.
    """

    channel: str = 'chat'

    def __init__(self) -> None:
        self._events: dict[str, EventHandler] = {}

    def on(self, event: str, handler: EventHandler) -> None:
        self._events[event] = handler

    async def on_connect(self, connection: ChatConnection) -> None:
        return None

    async def on_disconnect(self, connection: ChatConnection, code: Optional[int]) -> None:
        logger.info("User disconnected from {} chat: {} (code {})", self.channel, connection.id, code)

    async def serve(self, websocket: WebSocket) -> None:
        await websocket.accept()
        connection = ChatConnection(websocket)
        logger.info("User connected to {} chat: {}", self.channel, connection.id)
        code: Optional[int] = None
        try:
            await self.on_connect(connection)
            while True:
                message = await websocket.receive()
                if message['type'] == 'websocket.disconnect':
                    raise WebSocketDisconnect(message.get('code', 1000), message.get('reason'))
                raw = message.get('text')
                if raw is None:
                    logger.warning("Ignoring binary frame on {} chat from {}", self.channel, connection.id)
                    continue
                self._dispatch(connection, raw)
        except WebSocketDisconnect as exc:
            code = exc.code
        finally:
            # in-flight replies keep running so they still get persisted
            connection.closed = True
            await self.on_disconnect(connection, code)

    def _dispatch(self, connection: ChatConnection, raw: str) -> None:
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring non-JSON frame on {} chat from {}", self.channel, connection.id)
            return
        if not isinstance(envelope, dict):
            logger.warning("Ignoring malformed frame on {} chat from {}", self.channel, connection.id)
            return
        event = envelope.get('event')
        handler = self._events.get(event) if isinstance(event, str) else None
        if handler is None:
            logger.warning("Ignoring unknown event {!r} on {} chat", event, self.channel)
            return
        data = envelope.get('data')
        connection.spawn(handler(connection, data if isinstance(data, dict) else {}))

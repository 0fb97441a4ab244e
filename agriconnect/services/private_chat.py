from __future__ import annotations

import asyncio
from typing import Any, Protocol

from loguru import logger
from pydantic import ValidationError as PayloadError

from agriconnect.core.errors import RemoteServiceError, StoreError, ValidationError
from agriconnect.models.enums import ChatChannel
from agriconnect.schemas.chat import ChatMessageIn, message_out, transient_out
from agriconnect.services.assistant import ASSISTANT_NAME
from agriconnect.services.channels import ChannelHandler, ChatConnection
from agriconnect.services.message_store import MessageStore

SEND_EVENT = 'send_private_message'
RECEIVE_EVENT = 'receive_private_message'
HISTORY_EVENT = 'private_chat_history'

DEFAULT_AUTHOR = 'Anonymous Farmer'
GREETING = "👋 Hello! I'm your AgriConnect AI assistant. How can I help with your farming today?"
FALLBACK_REPLY = (
    "🌱 I'm having a temporary issue, but I can still help! Here's some general farming advice: "
    "Always test your soil before planting, use crop rotation to maintain soil health, and consider "
    "drip irrigation to save water. What specific problem are you facing?"
)


class Responder(Protocol):
    async def respond(self, user_input: str) -> str: ...


class PrivateChatHandler(ChannelHandler):
    """1:1 chat with the assistant. Everything goes back to the sender only."""

    channel = ChatChannel.PRIVATE.value

    def __init__(
        self,
        store: MessageStore,
        responder: Responder,
        *,
        history_limit: int = 20,
        reply_timeout: float = 15.0,
    ) -> None:
        super().__init__()
        self.store = store
        self.responder = responder
        self.history_limit = history_limit
        self.reply_timeout = reply_timeout
        self.on(SEND_EVENT, self.handle_message)

    async def on_connect(self, connection: ChatConnection) -> None:
        await connection.emit(RECEIVE_EVENT, transient_out(ASSISTANT_NAME, GREETING))
        try:
            history = await self.store.recent(ChatChannel.PRIVATE, self.history_limit)
        except StoreError as exc:
            logger.error("Could not load private history for {}: {}", connection.id, exc.message)
            return
        logger.info("Sending {} previous private messages to {}", len(history), connection.id)
        await connection.emit(HISTORY_EVENT, [message_out(item) for item in history])

    async def handle_message(self, connection: ChatConnection, data: dict[str, Any]) -> None:
        try:
            inbound = ChatMessageIn.model_validate(data)
        except PayloadError:
            logger.warning("Ignoring malformed private message from {}", connection.id)
            return
        text = inbound.clean_text
        if not text:
            logger.info("Empty private message from {}, ignoring", connection.id)
            return
        logger.info("New private message from {}", connection.id)

        try:
            user_message = await self.store.save(
                author=inbound.user or DEFAULT_AUTHOR,
                text=text,
                channel=ChatChannel.PRIVATE,
            )
            await connection.emit(RECEIVE_EVENT, message_out(user_message))

            # wait_for cancels the in-flight remote call when the budget runs out
            reply = await asyncio.wait_for(self.responder.respond(text), timeout=self.reply_timeout)
            reply_message = await self.store.save(
                author=ASSISTANT_NAME,
                text=reply,
                channel=ChatChannel.PRIVATE,
            )
            await connection.emit(RECEIVE_EVENT, message_out(reply_message))
        except (StoreError, RemoteServiceError, ValidationError, asyncio.TimeoutError) as exc:
            logger.error("Private chat failed for {}: {!r}", connection.id, exc)
            await self._send_fallback(connection)
        except Exception:
            logger.exception("Unexpected private chat failure for {}", connection.id)
            await self._send_fallback(connection)

    async def _send_fallback(self, connection: ChatConnection) -> None:
        try:
            saved = await self.store.save(author=ASSISTANT_NAME, text=FALLBACK_REPLY, channel=ChatChannel.PRIVATE)
        except Exception:
            logger.exception("Could not save private fallback message")
            payload = transient_out(ASSISTANT_NAME, FALLBACK_REPLY)
        else:
            payload = message_out(saved)
        await connection.emit(RECEIVE_EVENT, payload)

from __future__ import annotations

from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError as PayloadError

from agriconnect.core.errors import StoreError
from agriconnect.models.enums import ChatChannel
from agriconnect.schemas.chat import ChatMessageIn, message_out, transient_out
from agriconnect.services.channels import ChannelHandler, ChannelHub, ChatConnection
from agriconnect.services.message_store import MessageStore

SEND_EVENT = 'send_community_message'
RECEIVE_EVENT = 'receive_community_message'
HISTORY_EVENT = 'community_chat_history'

DEFAULT_AUTHOR = 'Community Farmer'
SYSTEM_AUTHOR = 'System'
SEND_FAILED_TEXT = "❌ Failed to send message. Please try again."


class CommunityChatHandler(ChannelHandler):
    """Shared farmer room: every accepted message reaches every member, sender included."""

    channel = ChatChannel.COMMUNITY.value

    def __init__(self, store: MessageStore, hub: ChannelHub, *, history_limit: int = 50) -> None:
        super().__init__()
        self.store = store
        self.hub = hub
        self.history_limit = history_limit
        self.on(SEND_EVENT, self.handle_message)

    async def on_connect(self, connection: ChatConnection) -> None:
        self.hub.join(connection)
        try:
            history = await self.store.recent(ChatChannel.COMMUNITY, self.history_limit)
        except StoreError as exc:
            logger.error("Could not load community history for {}: {}", connection.id, exc.message)
            return
        logger.info("Sending {} previous community messages to {}", len(history), connection.id)
        await connection.emit(HISTORY_EVENT, [message_out(item) for item in history])

    async def on_disconnect(self, connection: ChatConnection, code: Optional[int]) -> None:
        self.hub.leave(connection)
        await super().on_disconnect(connection, code)

    async def handle_message(self, connection: ChatConnection, data: dict[str, Any]) -> None:
        try:
            inbound = ChatMessageIn.model_validate(data)
        except PayloadError:
            logger.warning("Ignoring malformed community message from {}", connection.id)
            return
        text = inbound.clean_text
        if not text:
            logger.info("Empty community message from {}, ignoring", connection.id)
            return

        try:
            saved = await self.store.save(
                author=inbound.user or DEFAULT_AUTHOR,
                text=text,
                channel=ChatChannel.COMMUNITY,
            )
        except StoreError as exc:
            logger.error("Community message from {} not saved: {}", connection.id, exc.message)
            await connection.emit(RECEIVE_EVENT, transient_out(SYSTEM_AUTHOR, SEND_FAILED_TEXT, type='error'))
            return
        delivered = await self.hub.broadcast(RECEIVE_EVENT, message_out(saved))
        logger.info("Community message broadcast to {} members", delivered)

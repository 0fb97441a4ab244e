from datetime import datetime
from typing import Optional

import anyio
from loguru import logger
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from agriconnect.core.errors import StoreError, ValidationError
from agriconnect.models.chat_message import ChatMessage
from agriconnect.models.enums import ChatChannel


class MessageStore:
    """Append-only chat persistence.

    SQLModel sessions are blocking, so every call is pushed to a worker thread
    and the event loop keeps serving sockets while the database works.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def save(
        self,
        *,
        author: str,
        text: str,
        channel: ChatChannel,
        timestamp: Optional[datetime] = None,
    ) -> ChatMessage:
        text = (text or '').strip()
        if not text:
            raise ValidationError('Message text is required')
        record = ChatMessage(author=author, text=text, channel=channel)
        if timestamp is not None:
            record.timestamp = timestamp
        return await anyio.to_thread.run_sync(self._save, record)

    async def recent(self, channel: ChatChannel, limit: int) -> list[ChatMessage]:
        """Latest ``limit`` messages of ``channel``, oldest first."""
        return await anyio.to_thread.run_sync(self._recent, channel, limit)

    async def ping(self) -> bool:
        return await anyio.to_thread.run_sync(self._ping)

    def _save(self, record: ChatMessage) -> ChatMessage:
        try:
            with Session(self._engine) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                return record
        except SQLAlchemyError as exc:
            logger.error("Failed to save {} message: {}", record.channel.value, exc)
            raise StoreError('Failed to save message') from exc

    def _recent(self, channel: ChatChannel, limit: int) -> list[ChatMessage]:
        statement = (
            select(ChatMessage)
            .where(ChatMessage.channel == channel)
            .order_by(ChatMessage.timestamp.desc())
            .limit(limit)
        )
        try:
            with Session(self._engine) as session:
                rows = list(session.exec(statement).all())
        except SQLAlchemyError as exc:
            logger.error("Failed to load {} history: {}", channel.value, exc)
            raise StoreError('Failed to load chat history') from exc
        rows.reverse()
        return rows

    def _ping(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(sql_text('SELECT 1'))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Message store ping failed: {}", exc)
            return False

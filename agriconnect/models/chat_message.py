from datetime import datetime
from sqlmodel import Field, SQLModel
from agriconnect.models.base import IDModel, utc_column
from agriconnect.models.enums import ChatChannel, enum_column


class ChatMessage(IDModel, SQLModel, table=True):
    """A single chat line. Rows are append-only: never updated, never deleted."""

    __tablename__ = 'chat_messages'

    author: str = Field(default='Anonymous')
    text: str = Field(min_length=1)
    channel: ChatChannel = Field(sa_column=enum_column(ChatChannel, 'chat_channel'))
    timestamp: datetime = utc_column(index=True, sa_column_kwargs={"nullable": False})

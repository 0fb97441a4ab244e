from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from agriconnect.models.base import ensure_utc, utc_now
from agriconnect.models.chat_message import ChatMessage


class ChatMessageIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    user: Optional[str] = None
    text: Optional[str] = None

    @field_validator('user', 'text', mode='before')
    @classmethod
    def coerce_text(cls, value):  # type: ignore[override]
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def clean_text(self) -> str:
        return (self.text or '').strip()


class ChatMessageOut(BaseModel):
    id: Optional[str] = None
    user: str
    text: str
    timestamp: datetime
    type: Optional[str] = None


def message_out(message: ChatMessage) -> dict[str, Any]:
    out = ChatMessageOut(
        id=message.id,
        user=message.author,
        text=message.text,
        timestamp=ensure_utc(message.timestamp),
    )
    return out.model_dump(mode='json', exclude_none=True)


def transient_out(user: str, text: str, type: Optional[str] = None) -> dict[str, Any]:
    """Payload for a line that is delivered without (or despite failing) persistence."""
    out = ChatMessageOut(user=user, text=text, timestamp=utc_now(), type=type)
    return out.model_dump(mode='json', exclude_none=True)

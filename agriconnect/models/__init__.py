from agriconnect.models.base import IDModel, TimestampModel
from agriconnect.models.user import User
from agriconnect.models.chat_message import ChatMessage

__all__ = [
    'IDModel',
    'TimestampModel',
    'User',
    'ChatMessage',
]

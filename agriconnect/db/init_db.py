from sqlmodel import SQLModel
from agriconnect.db.session import engine
from agriconnect.core.config import settings
from agriconnect.models import chat_message, user  # noqa: F401


def init_db(drop_all: bool = False) -> None:
    if drop_all:
        SQLModel.metadata.drop_all(engine)
    if settings.DATABASE_URL.startswith('sqlite') or settings.ENV != 'production':
        SQLModel.metadata.create_all(engine)

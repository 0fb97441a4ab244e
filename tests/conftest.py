import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["HUGGINGFACE_API_KEY"] = ""
os.environ["SECRET_KEY"] = "test-secret"

from fastapi.testclient import TestClient
from sqlmodel import Session

from agriconnect.core.errors import StoreError
from agriconnect.db.init_db import init_db
from agriconnect.db.session import engine
from agriconnect.main import app
from agriconnect.models.chat_message import ChatMessage
from agriconnect.models.enums import ChatChannel

BASE_TIME = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)


class FakeResponder:
    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[str] = []

    async def respond(self, user_input: str) -> str:
        self.calls.append(user_input)
        if self.delay:
            await asyncio.sleep(self.delay)
        return f"reply to {user_input}"


class BrokenStore:
    """Store double whose writes (and optionally reads) always fail."""

    def __init__(self, fail_reads: bool = False) -> None:
        self.fail_reads = fail_reads
        self.save_attempts = 0

    async def save(self, **kwargs):
        self.save_attempts += 1
        raise StoreError('Failed to save message')

    async def recent(self, channel, limit):
        if self.fail_reads:
            raise StoreError('Failed to load chat history')
        return []

    async def ping(self) -> bool:
        return False


def seed_messages(channel: ChatChannel, count: int, prefix: str = 'msg') -> None:
    with Session(engine) as session:
        for index in range(count):
            session.add(
                ChatMessage(
                    author='Seeder',
                    text=f"{prefix}-{index}",
                    channel=channel,
                    timestamp=BASE_TIME + timedelta(seconds=index),
                )
            )
        session.commit()


@pytest.fixture(autouse=True)
def _reset_database():
    init_db(drop_all=True)
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def responder(monkeypatch):
    fake = FakeResponder()
    monkeypatch.setattr(app.state.private_chat, 'responder', fake)
    return fake


@pytest.fixture
def anyio_backend():
    return 'asyncio'

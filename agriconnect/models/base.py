from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_column(**kwargs):
    return Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        **kwargs,
    )


class IDModel(SQLModel):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, index=True)


class TimestampModel(SQLModel):
    created_at: datetime = utc_column(sa_column_kwargs={"nullable": False})
    updated_at: datetime = utc_column(sa_column_kwargs={"nullable": False, "onupdate": utc_now})

from sqlmodel import Field, SQLModel
from agriconnect.models.base import IDModel, TimestampModel


class User(IDModel, TimestampModel, SQLModel, table=True):
    __tablename__ = 'users'

    name: str
    email: str = Field(index=True, unique=True)
    hashed_password: str

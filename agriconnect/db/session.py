from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from agriconnect.core.config import settings


def build_engine(url: str) -> Engine:
    parsed = make_url(url)
    if parsed.drivername.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}}
        if parsed.database in (None, '', ':memory:'):
            # in-memory databases only live as long as their single connection
            kwargs['poolclass'] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)


def get_session():
    with Session(engine) as session:
        yield session

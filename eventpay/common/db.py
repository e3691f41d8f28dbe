"""Database bootstrap helpers for the registration store."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def build_engine(store_url: str, service_key: str | None = None, pool_size: int = 5) -> Engine:
    """Create the engine for `store_url`, authenticating with the service key."""

    url = make_url(store_url)
    if not url.drivername.startswith("sqlite"):
        if service_key:
            url = url.set(password=service_key)
        return create_engine(url, pool_pre_ping=True, pool_size=pool_size)
    return create_engine(url)


def build_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps returned rows readable after commit.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

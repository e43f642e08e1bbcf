# (c) Copyright Datacraft, 2026
from sqlalchemy import create_engine, make_url, Engine
from sqlalchemy.pool import NullPool, StaticPool

from mfa_core.config import get_settings
from .base import Base


def is_sqlite_memory(db_url: str) -> bool:
    url = make_url(db_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_db_engine(db_url: str | None = None) -> Engine:
    url = db_url or get_settings().db_url
    if not url:
        raise ValueError("db_url is expected to be non-empty")

    if is_sqlite_memory(url):
        # the database lives as long as its one connection
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if make_url(url).get_backend_name() == "sqlite":
        return create_engine(url, connect_args={"timeout": 30})

    return create_engine(url, poolclass=NullPool)


def create_tables(engine: Engine) -> None:
    Base.metadata.create_all(engine)

"""SQLAlchemy engine and session setup."""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from fresherflow.config import normalize_database_url


def _get_database_url() -> str:
    return normalize_database_url(os.environ.get("DATABASE_URL", "sqlite:///data/fresherflow.db"))


def make_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    engine_kwargs.setdefault("pool_pre_ping", True)
    bind = create_engine(normalize_database_url(database_url), echo=False, **engine_kwargs)
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


DATABASE_URL = _get_database_url()

SessionLocal = make_session_factory(DATABASE_URL)
engine = SessionLocal.kw["bind"]


class Base(DeclarativeBase):
    pass

"""
db/session.py
Database engine and session factory. Reads DATABASE_URL from env or defaults to sqlite local file.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

# Import Base so the module importing session has access to ORM metadata
from db.models import Base

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./proctor_violations.db")


def _make_engine(url: str):
    if url.startswith("sqlite"):
        # in-memory sqlite must share one connection or every session sees an empty DB
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(url, echo=False, connect_args={"check_same_thread": False}, poolclass=StaticPool)
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False)


_engine = _make_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)


def get_engine():
    return _engine


def make_session_factory(url: str, create_tables: bool = True):
    """Separate engine + sessionmaker, e.g. for tests or a second database."""
    engine = _make_engine(url)
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_all_tables():
    try:
        Base.metadata.create_all(bind=_engine)
    except SQLAlchemyError as e:
        raise RuntimeError(f"Failed to create tables: {e}")

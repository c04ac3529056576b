# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""SQLAlchemy plumbing: engine, tables and the transaction helper."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

# Seconds a SQLite writer waits on a locked database before giving up.
SQLITE_BUSY_TIMEOUT = 30


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class DBUser(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class DBSession(Base):
    __tablename__ = "sessions"

    token = Column(String(64), primary_key=True)
    username = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


class DBDocument(Base):
    __tablename__ = "documents"

    key = Column(String(255), primary_key=True)
    content = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


def make_engine(url: str, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
    else:
        args = {}
    logger.debug("Creating database engine for %s", url.split("://", 1)[0])
    return create_engine(url, echo=echo, connect_args=args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create any missing tables. Safe to call on every start."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def transaction(factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager for one database transaction.

    Commits when the block exits cleanly; otherwise rolls back and re-raises.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.warning("Commit failed, rolling back: %s", type(e).__name__)
        session.rollback()
        raise
    finally:
        session.close()

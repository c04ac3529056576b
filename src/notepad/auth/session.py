# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from notepad.errors import NotFoundError, StorageError
from notepad.infra.db import DBSession, transaction, utcnow

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Session:
    token: str
    username: Optional[str]
    created_at: datetime
    expires_at: datetime
    # True when ensure() had to create this session; the caller must set the cookie.
    is_new: bool = False

    @property
    def is_bound(self) -> bool:
        return self.username is not None

    def expired(self, now: Optional[datetime] = None) -> bool:
        return _aware(self.expires_at) <= (now or utcnow())


class SessionManager:
    """Server-side sessions persisted in the ``sessions`` table.

    The client only ever holds the token, signed with itsdangerous so that
    tampered or foreign cookies are rejected before touching the database.

    States: anonymous (username is None) -> bound -> destroyed (row deleted).
    Expiry is passive: an expired row is treated as absent and replaced.
    """

    def __init__(self, factory: sessionmaker, secret_key: str, *, max_age: int, salt: str = "notepad.session.v1") -> None:
        if not secret_key:
            raise RuntimeError("Missing secret key for session signing")
        self._factory = factory
        self._max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    @property
    def max_age(self) -> int:
        return self._max_age

    def sign(self, session: Session) -> str:
        return self._serializer.dumps({"t": session.token})

    def unsign(self, cookie_value: str) -> Optional[str]:
        if not cookie_value:
            return None
        try:
            data = self._serializer.loads(cookie_value, max_age=self._max_age)
        except (BadSignature, BadTimeSignature):
            return None
        token = (data or {}).get("t") if isinstance(data, dict) else None
        return str(token) if token else None

    def get(self, token: str) -> Optional[Session]:
        """Return the live session for token, or None if unknown or expired."""
        try:
            with transaction(self._factory) as db:
                row = db.get(DBSession, token)
        except SQLAlchemyError as e:
            logger.exception("Failed to read session")
            raise StorageError() from e
        if row is None:
            return None
        sess = Session(token=row.token, username=row.username, created_at=row.created_at, expires_at=row.expires_at)
        if sess.expired():
            return None
        return sess

    def create(self, username: Optional[str] = None) -> Session:
        now = utcnow()
        sess = Session(
            token=secrets.token_urlsafe(32),
            username=username,
            created_at=now,
            expires_at=now + timedelta(seconds=self._max_age),
            is_new=True,
        )
        try:
            with transaction(self._factory) as db:
                db.add(DBSession(
                    token=sess.token,
                    username=sess.username,
                    created_at=sess.created_at,
                    expires_at=sess.expires_at,
                ))
        except SQLAlchemyError as e:
            logger.exception("Failed to create session")
            raise StorageError() from e
        return sess

    def ensure(self, cookie_value: Optional[str]) -> Session:
        """Return the session behind a signed cookie, creating an anonymous one if needed."""
        token = self.unsign(cookie_value or "")
        if token:
            sess = self.get(token)
            if sess is not None:
                return sess
        return self.create()

    def bind(self, session: Session, username: str) -> Session:
        """Attach username to an anonymous session.

        A session already bound to someone else is destroyed and a fresh one
        is returned bound to username, so a bound token never changes owner.
        """
        if session.username == username:
            return session
        if session.username is not None:
            self.destroy(session)
            return self.create(username=username)

        try:
            with transaction(self._factory) as db:
                result = db.execute(
                    update(DBSession)
                    .where(DBSession.token == session.token, DBSession.username.is_(None))
                    .values(username=username)
                )
                updated = result.rowcount
        except SQLAlchemyError as e:
            logger.exception("Failed to bind session")
            raise StorageError() from e
        if not updated:
            # destroyed (or bound) concurrently
            raise NotFoundError("Session no longer exists.")
        return replace(session, username=username)

    def destroy(self, session: Optional[Session]) -> None:
        """Delete the session row. Unknown or already destroyed sessions are ignored."""
        if session is None:
            return
        try:
            with transaction(self._factory) as db:
                db.execute(delete(DBSession).where(DBSession.token == session.token))
        except SQLAlchemyError as e:
            logger.exception("Failed to destroy session")
            raise StorageError("Failed to log out.") from e

    def destroy_for_username(self, username: str) -> int:
        try:
            with transaction(self._factory) as db:
                result = db.execute(delete(DBSession).where(DBSession.username == username))
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.exception("Failed to destroy sessions")
            raise StorageError() from e

    def purge_expired(self) -> int:
        try:
            with transaction(self._factory) as db:
                result = db.execute(delete(DBSession).where(DBSession.expires_at <= utcnow()))
                removed = result.rowcount or 0
        except SQLAlchemyError as e:
            logger.exception("Failed to purge expired sessions")
            raise StorageError() from e
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed


def is_bound(session: Session) -> bool:
    return session.is_bound


def bound_username(session: Session) -> Optional[str]:
    return session.username

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from notepad.errors import DuplicateUsernameError, NotFoundError, StorageError
from notepad.infra.db import DBUser, transaction, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    username: str
    password_hash: str
    created_at: datetime

    def __repr__(self) -> str:
        return f"Account(username={self.username!r})"


class CredentialStore:
    """username -> password hash, backed by the ``users`` table.

    Uniqueness is decided by the table's UNIQUE constraint at insert time;
    there is no check-then-insert, so concurrent registrations for the same
    username resolve to exactly one row.
    """

    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory

    def register(self, username: str, password_hash: str) -> Account:
        created = utcnow()
        try:
            with transaction(self._factory) as session:
                session.add(DBUser(username=username, password_hash=password_hash, created_at=created))
        except IntegrityError as e:
            raise DuplicateUsernameError() from e
        except SQLAlchemyError as e:
            logger.exception("Failed to insert credential record")
            raise StorageError("Error registering new user.") from e
        return Account(username=username, password_hash=password_hash, created_at=created)

    def find_by_username(self, username: str) -> Account:
        try:
            with transaction(self._factory) as session:
                row = session.execute(select(DBUser).where(DBUser.username == username)).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception("Failed to read credential record")
            raise StorageError() from e
        if row is None:
            raise NotFoundError("User not found.")
        return Account(username=row.username, password_hash=row.password_hash, created_at=row.created_at)

    def exists(self, username: str) -> bool:
        try:
            with transaction(self._factory) as session:
                found = session.execute(select(DBUser.id).where(DBUser.username == username)).first()
        except SQLAlchemyError as e:
            logger.exception("Failed to query credential record")
            raise StorageError() from e
        return found is not None

    def delete(self, username: str) -> bool:
        try:
            with transaction(self._factory) as session:
                result = session.execute(delete(DBUser).where(DBUser.username == username))
                deleted = result.rowcount
        except SQLAlchemyError as e:
            logger.exception("Failed to delete credential record")
            raise StorageError("Error deleting user.") from e
        if not deleted:
            raise NotFoundError("User not found.")
        return True

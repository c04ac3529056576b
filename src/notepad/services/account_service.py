# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Account operations on top of the credential, session and document stores.

Each public method maps to one API call. Validation happens before any
storage access; storage failures surface as ``StorageError`` and are never
retried here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from notepad.auth.passwords import DUMMY_HASH, hash_password, validate_password, validate_username, verify_password
from notepad.auth.session import Session, SessionManager
from notepad.auth.users import Account, CredentialStore
from notepad.errors import (
    AuthenticationFailedError,
    InvalidFormatError,
    MissingFieldsError,
    NotAuthenticatedError,
    NotFoundError,
    StorageError,
)
from notepad.infra.documents import DocumentStore, key_is_storable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionStatus:
    loggedin: bool
    username: Optional[str] = None

    def as_dict(self) -> dict:
        if not self.loggedin:
            return {"loggedin": False}
        return {"loggedin": True, "username": self.username}


class AccountService:
    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionManager,
        documents: DocumentStore,
        *,
        default_document_key: str = "notepad",
        default_document: str = "",
    ) -> None:
        self.credentials = credentials
        self.sessions = sessions
        self.documents = documents
        self.default_document_key = default_document_key
        self.default_document = default_document

    def register(self, username: object, password: object) -> Account:
        """Create an account and seed its document.

        If seeding fails the account stays registered and StorageError is
        raised; there is no rollback of the credential record.
        """
        if not validate_username(username) or not validate_password(password):
            raise InvalidFormatError()
        # the username doubles as the document key
        if not key_is_storable(username):
            raise InvalidFormatError()

        account = self.credentials.register(username, hash_password(password))
        logger.info("Registered %s", username)

        try:
            self.documents.write(username, self.default_document)
        except StorageError as e:
            logger.error("Account %s registered but its document could not be created", username)
            raise StorageError("Error creating file") from e
        return account

    def login(self, session: Session, username: object, password: object) -> Session:
        """Verify credentials and bind session to username.

        Returns the bound session, which is a new one if session was already
        bound to a different account.
        """
        if not username or not password:
            raise MissingFieldsError()
        if not isinstance(username, str) or not isinstance(password, str):
            raise AuthenticationFailedError()

        try:
            account = self.credentials.find_by_username(username)
        except NotFoundError:
            account = None
        # always pay for one argon2 verify so unknown users are not faster to reject
        password_ok = verify_password(account.password_hash if account else DUMMY_HASH, password)
        if account is None or not password_ok:
            logger.info("Failed login attempt")
            raise AuthenticationFailedError()

        try:
            bound = self.sessions.bind(session, account.username)
        except NotFoundError:
            # session destroyed under us; start over with a fresh one
            bound = self.sessions.create(username=account.username)
        logger.info("Logged in %s", account.username)
        return bound

    def logout(self, session: Optional[Session]) -> None:
        self.sessions.destroy(session)
        if session is not None and session.username:
            logger.info("Logged out %s", session.username)

    def delete_account(self, session: Session) -> None:
        """Remove the credential record, the document and the session.

        Every step is attempted even when an earlier one fails; the first
        storage failure is raised once all of them have run.
        """
        username = session.username
        if not username:
            raise NotAuthenticatedError()

        failure: Optional[StorageError] = None

        try:
            self.credentials.delete(username)
        except NotFoundError:
            logger.warning("Credential record for %s was already gone", username)
        except StorageError as e:
            failure = e

        try:
            self.documents.delete(username)
        except NotFoundError:
            logger.warning("Failed to delete user file for %s: not found", username)
        except StorageError:
            logger.warning("Failed to delete user file for %s", username)

        # other devices logged into the same account go too
        for step in (lambda: self.sessions.destroy(session), lambda: self.sessions.destroy_for_username(username)):
            try:
                step()
            except StorageError as e:
                failure = failure or e

        if failure is not None:
            raise StorageError("Error deleting user.") from failure
        logger.info("Deleted account %s", username)

    def check_session(self, session: Optional[Session]) -> SessionStatus:
        if session is None or not session.is_bound:
            return SessionStatus(loggedin=False)
        # the row may have been destroyed since this request resolved it
        current = self.sessions.get(session.token)
        if current is None or not current.is_bound:
            return SessionStatus(loggedin=False)
        return SessionStatus(loggedin=True, username=current.username)

    def document_key(self, session: Optional[Session]) -> str:
        if session is not None and session.username:
            return session.username
        return self.default_document_key

    def load_document(self, session: Optional[Session]) -> str:
        return self.documents.read(self.document_key(session))

    def save_document(self, session: Optional[Session], text: object) -> None:
        if not isinstance(text, str):
            raise InvalidFormatError("Document text is required.")
        self.documents.write(self.document_key(session), text)

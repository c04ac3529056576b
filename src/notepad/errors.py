# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the stores, the account service and the HTTP layer.

Every error carries a message that is safe to show to the client and the
HTTP status the API answers with. Underlying causes (SQL errors, OS errors)
are chained with ``raise ... from`` and only ever logged server-side.
"""

from __future__ import annotations

from typing import Optional


class NotepadError(Exception):
    status_code = 500
    default_message = "Error on the server."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidFormatError(NotepadError):
    status_code = 400
    default_message = "Invalid email or password format."


class MissingFieldsError(NotepadError):
    status_code = 400
    default_message = "Username and password are required."


class DuplicateUsernameError(NotepadError):
    status_code = 500
    default_message = "Error registering new user, perhaps the username is already taken."


class AuthenticationFailedError(NotepadError):
    # Unknown user and wrong password are reported identically.
    status_code = 404
    default_message = "User not found or password incorrect."


class NotAuthenticatedError(NotepadError):
    status_code = 400
    default_message = "User is not logged in."


class NotFoundError(NotepadError):
    status_code = 500
    default_message = "Not found."


class StorageError(NotepadError):
    status_code = 500
    default_message = "Storage failure."

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_PH = PasswordHasher()

# Verified against when the account does not exist, so unknown usernames cost
# the same argon2 work as wrong passwords.
DUMMY_HASH = _PH.hash("notepad-dummy-password-0")

# local part, "@", then at least two dot-separated labels
USERNAME_RE = re.compile(r"^[^@]+@\w+(\.\w+)+\w\Z", re.ASCII)
USERNAME_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
_LETTER_RE = re.compile(r"[a-zA-Z]")
_DIGIT_RE = re.compile(r"\d", re.ASCII)


def validate_username(username: object) -> bool:
    if not isinstance(username, str) or len(username) > USERNAME_MAX_LENGTH:
        return False
    return USERNAME_RE.match(username) is not None


def validate_password(password: object) -> bool:
    """At least six characters with one ASCII letter and one digit."""
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return False
    return bool(_LETTER_RE.search(password)) and bool(_DIGIT_RE.search(password))


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _PH.hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False

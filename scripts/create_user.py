#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from notepad.app import build_account_service
from notepad.config import load_settings
from notepad.errors import NotepadError
from notepad.logging import setup_logging


def main() -> None:
    settings = load_settings()
    setup_logging(level=settings.log_level)
    accounts = build_account_service(settings)

    username = input("Username (email): ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        accounts.register(username, pw1)
    except NotepadError as e:
        raise SystemExit(e.message)
    print(f"OK -> {username}")


if __name__ == "__main__":
    main()

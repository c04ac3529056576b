# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SEVEN_DAYS_SECONDS = 7 * 24 * 60 * 60


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    database_url: str
    documents_backend: str
    documents_dir: Path
    default_document_key: str
    default_document: str
    secret_key: str
    session_salt: str
    cookie_name: str
    session_max_age: int
    cookie_secure: bool
    static_dir: Optional[Path]
    log_dir: Optional[Path]
    log_level: int
    host: str
    port: int
    reload: bool


def load_settings() -> Settings:
    """Read settings from NOTEPAD_* environment variables.

    Paths are resolved against the current working directory once, here, so
    the rest of the application never depends on it.
    """
    secret = os.getenv("NOTEPAD_SECRET_KEY") or os.getenv("SECRET_KEY")
    if not secret:
        raise RuntimeError("Missing NOTEPAD_SECRET_KEY (or SECRET_KEY) in environment")

    data_dir = Path(os.getenv("NOTEPAD_DATA_DIR", "data")).resolve()
    database_url = os.getenv("NOTEPAD_DATABASE_URL") or f"sqlite:///{data_dir / 'notepad.db'}"

    backend = os.getenv("NOTEPAD_DOCUMENTS_BACKEND", "file").strip().lower()
    if backend not in {"file", "sql"}:
        raise RuntimeError(f"Unknown NOTEPAD_DOCUMENTS_BACKEND '{backend}' (expected 'file' or 'sql')")

    static_dir = os.getenv("NOTEPAD_STATIC_DIR")
    log_dir = os.getenv("NOTEPAD_LOG_DIR")
    level_name = os.getenv("NOTEPAD_LOG_LEVEL", "INFO").strip().upper()

    return Settings(
        data_dir=data_dir,
        database_url=database_url,
        documents_backend=backend,
        documents_dir=Path(os.getenv("NOTEPAD_DOCUMENTS_DIR", str(data_dir / "files"))).resolve(),
        default_document_key=os.getenv("NOTEPAD_DEFAULT_DOCUMENT_KEY", "notepad"),
        default_document=os.getenv("NOTEPAD_DEFAULT_DOCUMENT", ""),
        secret_key=secret,
        session_salt=os.getenv("NOTEPAD_SESSION_SALT", "notepad.session.v1"),
        cookie_name=os.getenv("NOTEPAD_COOKIE_NAME", "notepad_session"),
        session_max_age=int(os.getenv("NOTEPAD_SESSION_MAX_AGE", str(SEVEN_DAYS_SECONDS))),
        cookie_secure=_flag("NOTEPAD_COOKIE_SECURE"),
        static_dir=Path(static_dir).resolve() if static_dir else Path(__file__).resolve().parent / "static",
        log_dir=Path(log_dir).resolve() if log_dir else None,
        log_level=getattr(logging, level_name, logging.INFO),
        host=os.getenv("NOTEPAD_HOST", "0.0.0.0"),
        port=int(os.getenv("NOTEPAD_PORT", "3000")),
        reload=_flag("NOTEPAD_RELOAD"),
    )

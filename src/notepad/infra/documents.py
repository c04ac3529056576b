# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Document storage: one text blob per key.

Two interchangeable backends sit behind the ``DocumentStore`` protocol:
plain files in a directory, or rows in the ``documents`` table. Files are
created with owner-only permissions inside an owner-only directory and are
replaced atomically, so readers never see a partially written document.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, Union
from urllib.parse import quote

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from notepad.errors import NotFoundError, StorageError
from notepad.infra.db import DBDocument, transaction, utcnow

logger = logging.getLogger(__name__)

_DIR_MODE = 0o700
_FILE_MODE = 0o600

# Characters kept verbatim in file names; everything else is %-escaped.
_SAFE_CHARS = "@+-_"

# Common file system limit on one path component, ".txt" included.
MAX_FILENAME_BYTES = 255


class DocumentStore(Protocol):
    def read(self, key: str) -> str: ...

    def write(self, key: str, content: str) -> None: ...

    def delete(self, key: str) -> None: ...


def filename_for(key: str) -> str:
    """Map a document key to a flat, filesystem-safe file name.

    Dots are kept except where they would form a dot-only or hidden name.
    """
    if not key:
        raise ValueError("Empty document key")
    name = quote(key, safe=_SAFE_CHARS + ".")
    if name.startswith("."):
        name = "%2E" + name[1:]
    filename = f"{name}.txt"
    if len(filename.encode("ascii")) > MAX_FILENAME_BYTES:
        raise ValueError("Document key too long")
    return filename


def key_is_storable(key: str) -> bool:
    """True when key maps to a file name every backend can hold."""
    try:
        filename_for(key)
    except ValueError:
        return False
    return True


class FileDocumentStore:
    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        target = (self._root / filename_for(key)).resolve()
        if target.parent != self._root:
            raise ValueError(f"Path traversal rejected for document key {key!r}")
        return target

    def read(self, key: str) -> str:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFoundError("Error reading file") from e
        except OSError as e:
            logger.exception("Failed to read document %r", key)
            raise StorageError("Error reading file") from e

    def write(self, key: str, content: str) -> None:
        """Write content via temp-file-then-rename with owner-only permissions."""
        target = self._path(key)
        try:
            os.makedirs(str(self._root), mode=_DIR_MODE, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self._root), suffix=".tmp", prefix=".doc_")
        except OSError as e:
            logger.exception("Failed to prepare document %r", key)
            raise StorageError("Error saving file") from e

        fd_owned = True
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _FILE_MODE)
            Path(tmp_path).replace(target)
        except BaseException as e:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            if isinstance(e, OSError):
                logger.exception("Failed to write document %r", key)
                raise StorageError("Error saving file") from e
            raise
        logger.debug("Saved document %r", key)

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError("File not found") from e
        except OSError as e:
            logger.exception("Failed to delete document %r", key)
            raise StorageError("Error deleting file") from e


class SqlDocumentStore:
    """Documents kept in the ``documents`` table of the application database."""

    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory

    def read(self, key: str) -> str:
        try:
            with transaction(self._factory) as db:
                row = db.get(DBDocument, key)
        except SQLAlchemyError as e:
            logger.exception("Failed to read document %r", key)
            raise StorageError("Error reading file") from e
        if row is None:
            raise NotFoundError("Error reading file")
        return row.content

    def write(self, key: str, content: str) -> None:
        """Upsert by key; last writer wins."""
        try:
            try:
                self._upsert(key, content)
            except IntegrityError:
                # a concurrent writer inserted the row between our UPDATE and INSERT
                self._upsert(key, content)
        except SQLAlchemyError as e:
            logger.exception("Failed to write document %r", key)
            raise StorageError("Error saving file") from e

    def _upsert(self, key: str, content: str) -> None:
        with transaction(self._factory) as db:
            updated = db.execute(
                update(DBDocument).where(DBDocument.key == key).values(content=content, updated_at=utcnow())
            ).rowcount
            if not updated:
                db.add(DBDocument(key=key, content=content, updated_at=utcnow()))

    def delete(self, key: str) -> None:
        try:
            with transaction(self._factory) as db:
                deleted = db.execute(delete(DBDocument).where(DBDocument.key == key)).rowcount
        except SQLAlchemyError as e:
            logger.exception("Failed to delete document %r", key)
            raise StorageError("Error deleting file") from e
        if not deleted:
            raise NotFoundError("File not found")

import logging

import pytest

from notepad.config import SEVEN_DAYS_SECONDS, load_settings
from notepad.logging import ensure_logging, setup_logging


@pytest.fixture()
def clean_env(monkeypatch):
    for name in ("NOTEPAD_SECRET_KEY", "SECRET_KEY", "NOTEPAD_DOCUMENTS_BACKEND", "NOTEPAD_DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_secret_is_required(clean_env):
    with pytest.raises(RuntimeError):
        load_settings()


def test_defaults(clean_env, tmp_path):
    clean_env.setenv("NOTEPAD_SECRET_KEY", "s3cret")
    clean_env.setenv("NOTEPAD_DATA_DIR", str(tmp_path / "data"))
    s = load_settings()
    assert s.secret_key == "s3cret"
    assert s.session_max_age == SEVEN_DAYS_SECONDS
    assert s.documents_backend == "file"
    assert s.documents_dir == (tmp_path / "data" / "files").resolve()
    assert s.database_url.endswith("notepad.db")
    assert s.cookie_secure is False
    assert s.default_document == ""


def test_overrides(clean_env):
    clean_env.setenv("SECRET_KEY", "fallback")
    clean_env.setenv("NOTEPAD_DOCUMENTS_BACKEND", "SQL")
    clean_env.setenv("NOTEPAD_COOKIE_SECURE", "yes")
    clean_env.setenv("NOTEPAD_SESSION_MAX_AGE", "60")
    clean_env.setenv("NOTEPAD_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.secret_key == "fallback"
    assert s.documents_backend == "sql"
    assert s.cookie_secure is True
    assert s.session_max_age == 60
    assert s.log_level == logging.DEBUG


def test_unknown_backend(clean_env):
    clean_env.setenv("NOTEPAD_SECRET_KEY", "s3cret")
    clean_env.setenv("NOTEPAD_DOCUMENTS_BACKEND", "redis")
    with pytest.raises(RuntimeError):
        load_settings()


def test_setup_logging_writes_file(tmp_path):
    path = setup_logging(tmp_path / "logs", level=logging.INFO)
    try:
        assert path is not None and path.parent == tmp_path / "logs"
        logging.getLogger("notepad.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello" in path.read_text(encoding="utf-8")
    finally:
        setup_logging(None)


def test_ensure_logging_leaves_existing_handlers(monkeypatch):
    root = logging.getLogger()
    marker = logging.NullHandler()
    monkeypatch.setattr(root, "handlers", [marker])
    assert ensure_logging() is False
    assert root.handlers == [marker]

import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import logging
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from notepad.app import build_account_service, create_app
from notepad.config import SEVEN_DAYS_SECONDS, Settings


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every store at a throwaway data directory."""
    data_dir = tmp_path / "data"
    return Settings(
        data_dir=data_dir,
        database_url=f"sqlite:///{data_dir / 'notepad.db'}",
        documents_backend="file",
        documents_dir=data_dir / "files",
        default_document_key="notepad",
        default_document="",
        secret_key="test-secret",
        session_salt="notepad.session.test",
        cookie_name="notepad_session",
        session_max_age=SEVEN_DAYS_SECONDS,
        cookie_secure=False,
        static_dir=None,
        log_dir=None,
        log_level=logging.INFO,
        host="127.0.0.1",
        port=3000,
        reload=False,
    )


@pytest.fixture(params=["file", "sql"])
def any_settings(request, settings: Settings) -> Settings:
    return replace(settings, documents_backend=request.param)


@pytest.fixture()
def accounts(settings: Settings):
    return build_account_service(settings)


@pytest.fixture()
def client(settings: Settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture()
def registered(client: TestClient):
    r = client.post("/register", json={"username": "a@b.com", "password": "abc123"})
    assert r.status_code == 200
    return "a@b.com", "abc123"

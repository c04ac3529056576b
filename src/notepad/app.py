# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from notepad.auth.session import Session, SessionManager
from notepad.auth.users import CredentialStore
from notepad.config import Settings, load_settings
from notepad.errors import NotepadError
from notepad.infra.db import create_tables, make_engine, make_session_factory
from notepad.infra.documents import DocumentStore, FileDocumentStore, SqlDocumentStore
from notepad.logging import ensure_logging
from notepad.permissions import (
    body_fields,
    clear_session_cookie,
    current_session,
    existing_session,
    get_accounts,
    get_settings,
    require_user,
    set_session_cookie,
)
from notepad.services.account_service import AccountService

logger = logging.getLogger(__name__)


def build_account_service(settings: Settings) -> AccountService:
    """Wire the stores to one database engine and return the service."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = make_engine(settings.database_url)
    create_tables(engine)
    factory = make_session_factory(engine)

    documents: DocumentStore
    if settings.documents_backend == "sql":
        documents = SqlDocumentStore(factory)
    else:
        documents = FileDocumentStore(settings.documents_dir)

    sessions = SessionManager(
        factory,
        settings.secret_key,
        max_age=settings.session_max_age,
        salt=settings.session_salt,
    )
    return AccountService(
        CredentialStore(factory),
        sessions,
        documents,
        default_document_key=settings.default_document_key,
        default_document=settings.default_document,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    ensure_logging(settings.log_dir, settings.log_level)
    accounts = build_account_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            accounts.sessions.purge_expired()
        except NotepadError:
            logger.warning("Could not purge expired sessions at startup")
        logger.info("Notepad ready (documents backend: %s)", settings.documents_backend)
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.accounts = accounts

    @app.exception_handler(NotepadError)
    async def _notepad_error(request: Request, exc: NotepadError):
        if exc.status_code >= 500:
            cause = exc.__cause__
            logger.error(
                "%s %s failed: %s%s",
                request.method,
                request.url.path,
                exc.message,
                f" ({type(cause).__name__})" if cause else "",
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.post("/register")
    def register(body: Dict[str, Any] = Depends(body_fields), svc: AccountService = Depends(get_accounts)):
        svc.register(body.get("username"), body.get("password"))
        return {"message": "User registered successfully!"}

    @app.post("/login")
    def login(
        response: Response,
        body: Dict[str, Any] = Depends(body_fields),
        session: Session = Depends(current_session),
        svc: AccountService = Depends(get_accounts),
        settings: Settings = Depends(get_settings),
    ):
        bound = svc.login(session, body.get("username"), body.get("password"))
        if bound.token != session.token:
            set_session_cookie(response, svc.sessions, settings, bound)
        return {"message": "User logged in successfully!", "username": bound.username}

    @app.post("/logout")
    def logout(
        response: Response,
        session: Optional[Session] = Depends(existing_session),
        svc: AccountService = Depends(get_accounts),
        settings: Settings = Depends(get_settings),
    ):
        svc.logout(session)
        clear_session_cookie(response, settings)
        return {"message": "User logged out successfully."}

    @app.post("/deleteuser")
    def delete_user(
        response: Response,
        session: Session = Depends(require_user),
        svc: AccountService = Depends(get_accounts),
        settings: Settings = Depends(get_settings),
    ):
        svc.delete_account(session)
        clear_session_cookie(response, settings)
        return {"message": "User deleted successfully."}

    @app.get("/check")
    def check(session: Session = Depends(current_session), svc: AccountService = Depends(get_accounts)):
        return svc.check_session(session).as_dict()

    @app.get("/load", response_class=PlainTextResponse)
    def load(session: Session = Depends(current_session), svc: AccountService = Depends(get_accounts)):
        return svc.load_document(session)

    @app.post("/save", response_class=PlainTextResponse)
    def save(
        body: Dict[str, Any] = Depends(body_fields),
        session: Session = Depends(current_session),
        svc: AccountService = Depends(get_accounts),
    ):
        svc.save_document(session, body.get("text"))
        return "File saved successfully"

    # Front-end last so API routes take precedence over static paths.
    if settings.static_dir is not None and settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(settings.static_dir), html=True), name="static")

    return app

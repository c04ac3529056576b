# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""FastAPI dependencies resolving the request's session and services."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, Response

from notepad.auth.session import Session, SessionManager
from notepad.config import Settings
from notepad.errors import InvalidFormatError, NotAuthenticatedError
from notepad.services.account_service import AccountService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}


def set_session_cookie(response: Response, sessions: SessionManager, settings: Settings, session: Session) -> None:
    response.set_cookie(
        settings.cookie_name,
        sessions.sign(session),
        max_age=sessions.max_age,
        **cookie_settings(settings),
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.cookie_name, **cookie_settings(settings))


def current_session(request: Request, response: Response) -> Session:
    """Session for this request; a new anonymous one gets its cookie attached to response."""
    settings = get_settings(request)
    sessions = get_accounts(request).sessions
    sess = sessions.ensure(request.cookies.get(settings.cookie_name))
    if sess.is_new:
        set_session_cookie(response, sessions, settings, sess)
    return sess


def existing_session(request: Request) -> Optional[Session]:
    """Session named by the cookie, without creating one."""
    settings = get_settings(request)
    sessions = get_accounts(request).sessions
    token = sessions.unsign(request.cookies.get(settings.cookie_name, ""))
    return sessions.get(token) if token else None


def require_user(request: Request) -> Session:
    sess = existing_session(request)
    if sess is None or not sess.is_bound:
        raise NotAuthenticatedError()
    return sess


async def body_fields(request: Request) -> Dict[str, Any]:
    """Request body as a dict, from JSON or form encoding."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError as e:
            raise InvalidFormatError("Malformed JSON body.") from e
        if not isinstance(data, dict):
            raise InvalidFormatError("Expected a JSON object.")
        return data
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)
    return {}

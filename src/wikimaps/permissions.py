# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

from fastapi import HTTPException, Request

from wikimaps.auth.session import COOKIE_NAME, SessionManager
from wikimaps.infra.db import Store

_UNSET = object()


@dataclass(frozen=True)
class CurrentUser:
    id: int
    name: str
    email: str

    def as_dict(self) -> dict:
        return asdict(self)


# Anonymous visitors share this record so favourites lookups need no special case.
GUEST = CurrentUser(id=0, name="Guest", email="guest@guest.com")


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    token = request.cookies.get(COOKIE_NAME, "")
    u = get_sessions(request).load(token)
    if u is None:
        return None
    return CurrentUser(id=u.id, name=u.name, email=u.email or "")


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    u = getattr(request.state, "user", _UNSET)
    if u is not _UNSET:
        return u
    u = load_user_from_request(request)
    request.state.user = u
    return u


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=303, headers={"Location": "/"})


def effective_user(user: Optional[CurrentUser]) -> CurrentUser:
    return user or GUEST


def cookie_settings(*, secure: bool = False) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": secure}

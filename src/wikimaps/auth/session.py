# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from wikimaps.auth.users import get_user_by_id
from wikimaps.config import DEFAULT_SESSION_MAX_AGE
from wikimaps.infra.db import Store
from wikimaps.infra.models import User

COOKIE_NAME = os.getenv("WIKIMAPS_COOKIE_NAME", "wikimaps_session")


def _serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("SECRET_KEY") or os.getenv("WIKIMAPS_SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY (or WIKIMAPS_SECRET_KEY) is not set")
    salt = os.getenv("WIKIMAPS_SESSION_SALT", "wikimaps.session.v1")
    return URLSafeTimedSerializer(secret_key=secret, salt=salt)


class SessionManager:
    """Persists the authenticated identity between requests.

    The session only ever holds the user id; the user itself is re-read from
    the store on every request.
    """

    def __init__(self, store: Store, *, max_age: int = DEFAULT_SESSION_MAX_AGE):
        self.store = store
        self.max_age = max_age

    def serialize(self, user: User) -> int:
        return int(user.id)

    def deserialize(self, token: int) -> Optional[User]:
        """Resolve a user id; an unknown id means an anonymous request."""
        return get_user_by_id(self.store, int(token))

    def sign(self, user: User) -> str:
        return _serializer().dumps({"uid": self.serialize(user)})

    def load(self, cookie: str) -> Optional[User]:
        if not cookie:
            return None
        try:
            data = _serializer().loads(cookie, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        uid = (data or {}).get("uid") if isinstance(data, dict) else None
        if not isinstance(uid, int):
            return None
        return self.deserialize(uid)

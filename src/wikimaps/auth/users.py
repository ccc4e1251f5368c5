# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import List, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from wikimaps.auth.passwords import hash_password, verify_password
from wikimaps.errors import AuthenticationError, ConflictError, ValidationError
from wikimaps.infra.db import Store
from wikimaps.infra.models import User


def get_user_by_name(store: Store, username: str) -> Optional[User]:
    u = (username or "").strip()
    if not u:
        return None
    with store.session() as db:
        return db.execute(select(User).where(User.name == u)).scalar_one_or_none()


def get_user_by_id(store: Store, user_id: int) -> Optional[User]:
    with store.session() as db:
        return db.get(User, user_id)


def list_users(store: Store) -> List[User]:
    with store.session() as db:
        return list(db.execute(select(User).order_by(User.id)).scalars())


class Authenticator:
    """Verifies credentials against the stored password hashes."""

    def __init__(self, store: Store):
        self.store = store

    def verify(self, username: str, password: str) -> User:
        # StoreError from the lookup propagates; it is never read as "no user".
        user = get_user_by_name(self.store, username)
        if user is None:
            raise AuthenticationError("unknown user")
        if not verify_password(user.password, password):
            raise AuthenticationError("bad credentials")
        return user

    def register(self, username: str, email: str, password: str) -> User:
        """Create a user if the name is unused.

        Raises ConflictError without inserting anything when the name exists.
        """
        name = (username or "").strip()
        if not name or not password:
            raise ValidationError("username and password are required")

        password_hash = hash_password(password)
        with self.store.session() as db:
            taken = db.execute(select(func.count(User.id)).where(User.name == name)).scalar_one()
            if taken:
                raise ConflictError(f"user '{name}' already exists")
            user = User(name=name, email=(email or "").strip(), password=password_hash)
            db.add(user)
            try:
                db.flush()
            except IntegrityError as e:
                # Another request inserted the same name after the count.
                raise ConflictError(f"user '{name}' already exists") from e
        logger.info("Registered user {} (id={})", user.name, user.id)
        return user

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Favourite/contribution flags on the users_maps join table."""

from __future__ import annotations

from typing import Any, List

from loguru import logger
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from wikimaps.errors import ConflictError, StoreError, ValidationError
from wikimaps.infra.db import Store
from wikimaps.infra.models import UserMap

FLAGS = ("favourite", "contribution")

_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def set_flag(store: Store, *, user_id: int, map_id: int, flag: str, state: bool) -> int:
    """Set ``flag`` for (user_id, map_id) and return the relation row id.

    A missing row is created with the other flag false; an existing row only
    has ``flag`` changed. Runs as a single INSERT .. ON CONFLICT DO UPDATE so
    concurrent callers cannot create duplicate rows.
    """
    if flag not in FLAGS:
        raise ValidationError(f"unknown flag '{flag}'")
    insert = _INSERTS.get(store.dialect)
    if insert is None:
        raise StoreError(f"upsert not supported on dialect '{store.dialect}'")

    values = {"user_id": user_id, "map_id": map_id, "favourite": False, "contribution": False}
    values[flag] = bool(state)
    stmt = insert(UserMap).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[UserMap.user_id, UserMap.map_id],
        set_={flag: stmt.excluded[flag]},
    ).returning(UserMap.id)

    with store.session() as db:
        relation_id = db.execute(stmt).scalar_one()
    logger.debug("users_maps {} set {}={} (user={}, map={})", relation_id, flag, bool(state), user_id, map_id)
    return relation_id


def set_favourite(store: Store, *, user_id: int, map_id: int, state: bool) -> int:
    return set_flag(store, user_id=user_id, map_id=map_id, flag="favourite", state=state)


def set_contribution(store: Store, *, user_id: int, map_id: int, state: bool) -> int:
    return set_flag(store, user_id=user_id, map_id=map_id, flag="contribution", state=state)


def create_relation(store: Store, *, user_id: int, map_id: int, favourite: bool, contribution: bool) -> int:
    with store.session() as db:
        exists = db.execute(
            select(UserMap.id).where(UserMap.user_id == user_id, UserMap.map_id == map_id)
        ).scalar_one_or_none()
        if exists is not None:
            raise ConflictError(f"relation for user {user_id} and map {map_id} already exists")
        rel = UserMap(user_id=user_id, map_id=map_id, favourite=bool(favourite), contribution=bool(contribution))
        db.add(rel)
        try:
            db.flush()
        except IntegrityError as e:
            raise ConflictError(f"relation for user {user_id} and map {map_id} already exists") from e
        return rel.id


def get_relation(store: Store, *, user_id: int, map_id: int) -> Any:
    with store.session() as db:
        return db.execute(
            select(UserMap).where(UserMap.user_id == user_id, UserMap.map_id == map_id)
        ).scalar_one_or_none()


def list_relations(store: Store, user_id: int) -> List[UserMap]:
    with store.session() as db:
        return list(db.execute(select(UserMap).where(UserMap.user_id == user_id).order_by(UserMap.id)).scalars())


def favourite_map_ids(store: Store, user_id: int) -> List[int]:
    with store.session() as db:
        rows = db.execute(
            select(UserMap.map_id)
            .where(UserMap.user_id == user_id, UserMap.favourite.is_(True))
            .order_by(UserMap.map_id)
        )
        return [r[0] for r in rows]

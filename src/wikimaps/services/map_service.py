# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Queries on maps and their points."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select

from wikimaps.errors import NotFoundError
from wikimaps.infra.db import Store
from wikimaps.infra.models import Map, Point, UserMap

POINT_FIELDS = ("title", "description", "image", "latitude", "longitude", "map_id", "user_id")
MAP_FIELDS = ("creator_id", "title", "latitude", "longitude")


def _pick(fields: Dict[str, Any], allowed: tuple) -> Dict[str, Any]:
    return {k: fields.get(k) for k in allowed}


def list_maps(store: Store) -> List[Map]:
    with store.session() as db:
        return list(db.execute(select(Map).order_by(Map.id)).scalars())


def get_map(store: Store, map_id: int) -> Optional[Map]:
    with store.session() as db:
        return db.get(Map, map_id)


def create_map(store: Store, fields: Dict[str, Any]) -> int:
    with store.session() as db:
        m = Map(**_pick(fields, MAP_FIELDS))
        db.add(m)
        db.flush()
        return m.id


def maps_flagged_by(store: Store, user_id: int, flag: str) -> List[Dict[str, Any]]:
    """``[{id, title}]`` of the maps where the user's relation row has ``flag`` set."""
    column = getattr(UserMap, flag)
    with store.session() as db:
        rows = db.execute(
            select(Map.id, Map.title)
            .join(UserMap, Map.id == UserMap.map_id)
            .where(UserMap.user_id == user_id, column.is_(True))
            .order_by(Map.id)
        )
        return [{"id": r.id, "title": r.title} for r in rows]


def list_points(store: Store, map_id: int) -> List[Point]:
    with store.session() as db:
        return list(db.execute(select(Point).where(Point.map_id == map_id).order_by(Point.id)).scalars())


def create_point(store: Store, fields: Dict[str, Any]) -> int:
    with store.session() as db:
        p = Point(**_pick(fields, POINT_FIELDS))
        db.add(p)
        db.flush()
        return p.id


def update_point(store: Store, point_id: int, fields: Dict[str, Any]) -> int:
    """Update the given point fields; keys missing from ``fields`` keep their value."""
    with store.session() as db:
        p = db.get(Point, point_id)
        if p is None:
            raise NotFoundError(f"point {point_id} does not exist")
        for key in POINT_FIELDS:
            if key in fields:
                setattr(p, key, fields[key])
        return p.id


def delete_point(store: Store, point_id: int) -> None:
    with store.session() as db:
        result = db.execute(delete(Point).where(Point.id == point_id))
        if result.rowcount == 0:
            raise NotFoundError(f"point {point_id} does not exist")

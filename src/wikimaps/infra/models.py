# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Relational tables: users, maps, points and the users_maps join."""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255))
    password = Column(String(255), nullable=False)  # argon2 hash


class Map(Base):
    __tablename__ = "maps"

    id = Column(Integer, primary_key=True)
    creator_id = Column(Integer, ForeignKey("users.id"))
    title = Column(String(255))
    latitude = Column(Float)
    longitude = Column(Float)


class Point(Base):
    __tablename__ = "points"

    id = Column(Integer, primary_key=True)
    title = Column(String(255))
    description = Column(Text)
    image = Column(String(1024))
    latitude = Column(Float)
    longitude = Column(Float)
    map_id = Column(Integer, ForeignKey("maps.id", ondelete="CASCADE"), index=True)
    user_id = Column(Integer)


class UserMap(Base):
    """Favourite/contribution flags of one user on one map.

    ``user_id`` has no foreign key: the guest (id 0) owns rows too.
    """

    __tablename__ = "users_maps"
    __table_args__ = (UniqueConstraint("user_id", "map_id", name="uq_users_maps_user_map"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    map_id = Column(Integer, ForeignKey("maps.id", ondelete="CASCADE"), nullable=False)
    favourite = Column(Boolean, nullable=False, default=False)
    contribution = Column(Boolean, nullable=False, default=False)


def row_to_dict(row: Any, *, exclude: tuple = ()) -> Dict[str, Any]:
    """Plain dict of a mapped row's columns, ready for JSON."""
    return {
        c.name: getattr(row, c.name)
        for c in row.__table__.columns
        if c.name not in exclude
    }

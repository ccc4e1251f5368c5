# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process-wide database handle.

A ``Store`` is built once at startup and handed to every component; it is the
only place that opens sessions and the only transaction boundary.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from wikimaps.errors import StoreError
from wikimaps.infra.models import Base


class Store:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessionmaker = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, *, echo: bool = False) -> "Store":
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        return cls(create_engine(url, echo=echo, connect_args=connect_args))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def init_db(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not create tables: {e}") from e

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session; commit on success, roll back and raise StoreError on failure."""
        db = self._sessionmaker()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Store operation failed: {}", e)
            raise StoreError(str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()

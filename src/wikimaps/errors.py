# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application exceptions.

Every error raised by the store, auth and service layers derives from
``WikimapsError`` and carries the HTTP status the router answers with.
"""

from __future__ import annotations


class WikimapsError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.code
        super().__init__(self.message)


class AuthenticationError(WikimapsError):
    """Unknown user or password mismatch."""

    code = "authentication_error"
    status_code = 401


class StoreError(WikimapsError):
    """Any persistence fault (connection, constraint, SQL)."""

    code = "store_error"
    status_code = 500


class ValidationError(WikimapsError):
    code = "validation_error"
    status_code = 400


class NotFoundError(WikimapsError):
    code = "not_found"
    status_code = 404


class ConflictError(WikimapsError):
    code = "conflict"
    status_code = 409

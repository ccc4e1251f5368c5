# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict, Optional

from wikimaps.infra.db import Store
from wikimaps.permissions import CurrentUser, effective_user
from wikimaps.services.relation_service import favourite_map_ids


def build_home_context(store: Store, user: Optional[CurrentUser], api_key: str) -> Dict[str, Any]:
    """Template variables of the home page.

    Anonymous visitors are rendered as the guest (id 0), so their favourites
    are the rows stored under user id 0.
    """
    u = effective_user(user)
    return {
        "apiKey": api_key,
        "user": u,
        "favourites": favourite_map_ids(store, u.id),
    }

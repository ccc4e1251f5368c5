# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Wikimaps: collaborative maps with geolocated points.

Run with:
  python -m wikimaps
"""

__version__ = "0.1.0"

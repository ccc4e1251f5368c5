"""Wikimaps entrypoint.

Run with:
  python -m wikimaps
"""

import os
import uvicorn

from wikimaps.config import load_settings

def main() -> None:
    settings = load_settings()
    reload = os.getenv("WIKIMAPS_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("wikimaps.app:app", host=settings.host, port=settings.port, reload=reload)

if __name__ == "__main__":
    main()

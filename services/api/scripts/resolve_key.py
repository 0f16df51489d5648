#!/usr/bin/env python3
"""Resolve a key locally and print the compare payload.

Runs the same pipeline as GET /v1/compare/{key} without starting the API.

Usage:
  cd services/api
  python -m scripts.resolve_key "asin:B00TEST1234"
  python -m scripts.resolve_key "https://www.bestbuy.com/site/6505727.p"

Optional env vars:
  DATABASE_URL=postgresql://...     (defaults to settings)
  STATS_LOOKBACK_DAYS=180
  PARSE_ONLY=1                      print the parsed key and exit
"""

import asyncio
import json
import os
import sys


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.services.compare import DataStoreUnavailable, NotResolvable, compare_key  # noqa: E402
from app.services.keys import parse_key  # noqa: E402
from app.stores.postgres import close_db, init_db, ping_db  # noqa: E402


async def main() -> None:
    if len(sys.argv) < 2:
        raise SystemExit("usage: python -m scripts.resolve_key <key-or-url>")
    raw = sys.argv[1]

    key = parse_key(raw)
    print(f"parsed: kind={key.kind} value={key.value} canonical={key.canonical}")
    if os.getenv("PARSE_ONLY", "").strip() in ("1", "true", "yes"):
        return

    await init_db()
    try:
        await ping_db()
        try:
            response = await compare_key(raw)
        except NotResolvable as e:
            print({"ok": False, "error": "NOT_FOUND", "input": e.key.canonical})
            return
        except DataStoreUnavailable as e:
            print({"ok": False, "error": "DATASTORE_UNAVAILABLE", "message": str(e)})
            return
        print(json.dumps(response.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())

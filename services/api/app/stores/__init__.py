"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: engine/session lifecycle, SQL normalization functions for SQLite
- Redis: best-effort compare payload cache with TTL

No matching or aggregation logic in stores - that belongs in services.
"""

"""Shared fixtures: a throwaway SQLite database wired through app.stores.postgres."""

import pytest

from app.stores.postgres import close_db, create_tables, get_session, init_db


@pytest.fixture
async def db(tmp_path):
    """Initialize the app's engine against a fresh SQLite file and create the schema."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path}/compare.db")
    await create_tables()
    yield
    await close_db()


@pytest.fixture
def add_rows(db):
    async def _add(*rows) -> None:
        async with get_session() as session:
            session.add_all(rows)

    return _add

"""
Async SQLAlchemy engine + session factory for the relational backend.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from database.models import Base


def create_session_factory(database_url: str) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Build the engine and a session factory bound to it."""
    engine = create_async_engine(database_url, echo=False)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


def ensure_sqlite_directory(url: URL) -> None:
    """SQLite creates the file but not its parent directory."""
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


async def create_tables(engine: AsyncEngine) -> None:
    """Create ``users`` / ``password_otps`` if they are missing."""
    ensure_sqlite_directory(engine.url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

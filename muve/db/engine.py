"""Async SQLAlchemy engine and session factory."""

from __future__ import annotations

from pathlib import Path
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine, AsyncEngine

from muve.config import get_settings

_settings = get_settings()


def _ensure_sqlite_dir(database_url: str) -> None:
    if database_url.startswith("sqlite+aiosqlite:///") and ":memory:" not in database_url:
        db_path = database_url.replace("sqlite+aiosqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


_ensure_sqlite_dir(_settings.database_url)

engine = create_async_engine(_settings.database_url, echo=False)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(eng: AsyncEngine | None = None):
    """Create all tables on the given engine (the default engine when omitted)."""
    from muve.models.base import Base

    async with (eng or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

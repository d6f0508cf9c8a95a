# selfcarebot/db/session.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from selfcarebot.db.models import metadata


def create_engine(dsn: str, *, echo: bool = False) -> AsyncEngine:
    """
    Build the AsyncEngine shared by the scheduler and the conversation handler.
    Production DSN is 'mysql+aiomysql://...'; 'sqlite+aiosqlite://' keeps a single
    in-memory connection (tests, local runs).
    """
    if dsn.startswith("sqlite"):
        return create_async_engine(
            dsn,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    return create_async_engine(
        dsn,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=0,
        echo=echo,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """CREATE TABLE IF NOT EXISTS for every table; full schema assumed afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

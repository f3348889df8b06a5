"""Async engine, session factory and table creation.

Document-shaped records (milestone maps, quiz breakdowns, offer details)
live in JSON columns, so every table can be created from the models with
``create_all``; there are no migrations.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from houses_bc.app.config import get_settings


class Base(DeclarativeBase):
    pass


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # Writers wait up to 30s for the file lock
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


settings = get_settings()
is_sqlite = settings.database_url.startswith("sqlite")

engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency: one session per request."""
    async with async_session() as session:
        yield session


async def init_db() -> None:
    """Create missing tables at startup."""
    import houses_bc.domain.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        if is_sqlite:
            # Admin dashboard reads while client requests write
            await conn.execute(text("PRAGMA journal_mode=WAL"))

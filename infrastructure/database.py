"""
Order store engine and session factory

SQLite (aiosqlite) by default for development and tests, PostgreSQL (asyncpg) in production.
"""
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core.config import settings
from core.logging_config import get_logger
from infrastructure.models import Base


logger = get_logger(__name__)

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def to_async_url(database_url: str) -> str:
    """``postgresql://`` -> ``postgresql+asyncpg://``; URLs that already name a driver pass through."""
    url = make_url(database_url)
    if "+" in url.drivername:
        return database_url
    try:
        driver = _ASYNC_DRIVERS[url.drivername]
    except KeyError:
        raise ValueError(f"Unsupported database driver: {url.drivername}") from None
    return url.set(drivername=driver).render_as_string(hide_password=False)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(to_async_url(database_url), echo=echo)


engine = build_engine(settings.database.url, echo=settings.database.echo)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create tables for every model (orders, catalog, checkout settings)."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_ready", driver=bind.url.drivername)


async def drop_tables(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    await engine.dispose()

"""Async engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from jarvice_interview.config import get_settings
from jarvice_interview.db.models import Base


def create_engine_and_sessionmaker(
    database_url: str | None = None,
    echo: bool = False,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the async engine and its session factory.

    Args:
        database_url: Connection string (uses config if not provided).
        echo: Log emitted SQL.

    Returns:
        The engine and a session factory bound to it.
    """
    url = database_url or get_settings().database_url
    engine = create_async_engine(url, echo=echo)
    sessionmaker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, sessionmaker


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

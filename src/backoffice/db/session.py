from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from backoffice.config import get_settings

Base = declarative_base()


def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo, future=True)


def make_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind, class_=AsyncSession, expire_on_commit=False, autoflush=False, autocommit=False
    )


_settings = get_settings()
DATABASE_URL = _settings.database_url

# Async engine
engine = make_engine(DATABASE_URL, echo=_settings.sql_echo)

# Async session factory
AsyncSessionLocal = make_session_factory(engine)


async def create_schema(bind: AsyncEngine = engine) -> None:
    """Create any missing tables."""
    # models must be imported so their tables are registered on Base.metadata
    from backoffice.db import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

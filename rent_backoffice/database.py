"""Database Connection and Session Management"""

import re
import ssl

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from typing import AsyncGenerator

from rent_backoffice.config import settings


def build_database_url(raw_url: str) -> tuple[str, dict]:
    """Normalize DATABASE_URL for an async driver and return (url, connect_args)."""
    # Convert postgresql:// to postgresql+asyncpg:// for async support
    database_url = raw_url.replace("postgresql://", "postgresql+asyncpg://")

    # asyncpg uses ssl=SSLContext or True, not sslmode; strip sslmode from URL (asyncpg#737, SQLAlchemy#6275)
    connect_args = {}
    if re.search(r"[?&]sslmode=(require|required|verify-full)", database_url, re.I):
        _ssl_ctx = ssl.create_default_context()
        _ssl_ctx.check_hostname = False
        _ssl_ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = _ssl_ctx
        database_url = re.sub(r"[?&]sslmode=[^&]+", "", database_url, flags=re.I)
        database_url = re.sub(r"\?&", "?", database_url).rstrip("?")
    if "?&" in database_url:
        database_url = database_url.replace("?&", "?")
    return database_url, connect_args


database_url, connect_args = build_database_url(settings.DATABASE_URL)

# SQLite (local runs, tests) does not take queue-pool sizing arguments
if database_url.startswith("sqlite"):
    engine = create_async_engine(database_url, echo=settings.DEBUG, future=True)
else:
    # pool_pre_ping detects stale connections after failover
    engine = create_async_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        echo=settings.DEBUG,
        future=True,
    )

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    Stores commit per row, so this only rolls back whatever is left pending
    when a request fails.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database tables (for development only)"""
    # Register all mappers on Base.metadata
    import rent_backoffice.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()

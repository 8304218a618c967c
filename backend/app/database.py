"""Database setup with SQLAlchemy async."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

REQUIRED_TABLES = ("nfts", "sync_checkpoints", "sync_leases")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create tables that don't exist yet (local development only)."""
    # Register models on the metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_ready() -> None:
    """
    Verify database connectivity and expected schema.

    Checks that the mirror, checkpoint and lease tables exist.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

        tables = await conn.execute(
            text(
                "SELECT "
                "to_regclass('public.nfts') AS nfts, "
                "to_regclass('public.sync_checkpoints') AS sync_checkpoints, "
                "to_regclass('public.sync_leases') AS sync_leases"
            )
        )
        row = tables.first()
        if row is None or any(value is None for value in row):
            missing = [
                name
                for name in REQUIRED_TABLES
                if row is None or getattr(row, name) is None
            ]

            raise RuntimeError(
                f"Database schema is missing tables: {', '.join(missing)} "
                "(run database init or check migrations)."
            )


def upsert_insert(session: AsyncSession):
    """
    Dialect-specific ``insert`` supporting ``on_conflict_do_update``.

    PostgreSQL in production, SQLite in the test suite.
    """
    if session.bind.dialect.name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        from sqlalchemy.dialects.postgresql import insert
    return insert

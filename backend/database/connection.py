from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text, inspect
import logging

from config import Settings, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_engine(settings: Optional[Settings] = None, url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine.

    PostgreSQL URLs get a sized connection pool (and SSL when DB_SSL is set);
    SQLite URLs are left on SQLAlchemy's default pool.
    """
    settings = settings or get_settings()
    url = url or settings.get_database_url()

    kwargs = {"echo": settings.DB_ECHO}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
        if settings.DB_SSL:
            kwargs["connect_args"] = {"ssl": "require"}

    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create async session factory bound to engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all mapped tables that do not exist yet"""
    # Import for side effect: registers member tables on Base.metadata
    import members.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db(engine: AsyncEngine) -> bool:
    """Initialize database connection and verify tables exist"""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info(f"{engine.dialect.name} connection successful")

            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
            logger.info(f"Available tables: {tables}")

            return True
    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise

"""
Database configuration module using centralized settings.
"""
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from core.config import settings
from core.logging import get_logger

logger = get_logger("database")

ASYNC_SQLALCHEMY_DATABASE_URL = settings.database_url


def build_async_engine(url: str = ASYNC_SQLALCHEMY_DATABASE_URL, **kwargs):
    """Create an async engine; pool sizing only applies to server databases."""
    engine_kwargs = {"echo": settings.enable_sql_logging, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    engine_kwargs.update(kwargs)
    return create_async_engine(url, **engine_kwargs)


async_engine = build_async_engine()

logger.info("Database configuration loaded", dialect=async_engine.dialect.name, database=settings.db_name)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False
)

# Create Base class
Base = declarative_base()


# Dependency to get async database session
async def get_async_db():
    async with AsyncSessionLocal() as db:
        try:
            logger.debug("Async database session created")
            yield db
        except Exception as e:
            logger.error("Async database session error", error=str(e), exc_info=True)
            await db.rollback()
            raise
        finally:
            await db.close()
            logger.debug("Async database session closed")

import logging

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from src.backend.config import settings

# Configure logging for better error tracing
logger = logging.getLogger(__name__)
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

DATABASE_URL = settings.DATABASE_URL
_IS_SQLITE = DATABASE_URL.startswith("sqlite")

# SQLite connections are bound to the event loop that opened them, so they are
# never pooled; server databases get a real pool with pre-ping.
if _IS_SQLITE:
    _engine_kwargs = {"poolclass": NullPool}
else:
    _engine_kwargs = {
        "pool_size": settings.DB_POOL_SIZE,          # Pool size for database connections
        "max_overflow": settings.DB_MAX_OVERFLOW,    # Max connections that can exceed pool_size
        "pool_pre_ping": True,                       # Ensures the connections are valid before using them
    }

try:
    engine = create_async_engine(DATABASE_URL, echo=settings.DB_ECHO, **_engine_kwargs)
    logger.info("Document store engine created: %s", engine.url.render_as_string(hide_password=True))
except SQLAlchemyError as e:
    logger.error(f"Error creating database engine: {e}")
    raise Exception(f"Database connection failed: {e}")

# Use async_sessionmaker to create sessionmaker for async SQLAlchemy session
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,  # Don't expire objects after commit
)

# Base class for SQLAlchemy ORM models (for declarative base models)
Base = declarative_base()


async def init_models() -> None:
    """Create any missing tables. Safe to call on every startup."""
    # Import models so they register on Base.metadata
    from src.backend.models import document, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Dependency to retrieve a database session in FastAPI
# Ensures the session is properly closed after use
async def get_db():
    try:
        async with AsyncSessionLocal() as session:
            yield session
    except SQLAlchemyError as e:
        logger.error(f"Error: while interacting with the database: {e}")
        raise HTTPException(status_code=500, detail=f"Database operation failed: {e}")

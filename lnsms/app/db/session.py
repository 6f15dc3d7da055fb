"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support. SQLite (aiosqlite) is the default
ledger store; PostgreSQL (asyncpg) works with the same models.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from lnsms.app.core.config import settings


def build_engine(database_url: str, echo: bool = False):
    """Create an async engine; SQLite needs its connection shared across tasks."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_async_engine(
        database_url,
        echo=echo,
        connect_args=connect_args,
        pool_pre_ping=not database_url.startswith("sqlite"),
    )


# Create async engine
engine = build_engine(settings.database_url, echo=settings.db_echo)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def create_tables(bind=None) -> None:
    """Create ledger tables if they do not exist yet."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

"""
Async engine, session factory and declarative base.

Every API request runs in one ``AsyncSession`` that commits at the end
(see ``src.api.dependencies.get_db``).  Accepting a request, cancelling a
trip and recording a rating hold ``SELECT ... FOR UPDATE`` locks until that
commit, so each in-flight request pins a pooled connection for its whole
duration; size the pool with ``DB_POOL_SIZE`` / ``DB_MAX_OVERFLOW`` against
the number of concurrent requests the workers serve.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models.

    ``eager_defaults`` fetches server-generated columns (``created_at``,
    ``updated_at``) on flush; async sessions cannot lazy-load them later.
    """

    __mapper_args__ = {"eager_defaults": True}

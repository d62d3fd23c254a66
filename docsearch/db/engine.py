# =============================================================================
# Database Engine & Session Management
# =============================================================================
#
# Two engines point at the same PostgreSQL database:
#
#   async_engine (asyncpg)  → FastAPI handlers (upload, process, search)
#   sync engine  (psycopg2) → Celery workers and the embedding batch runner
#
# The sync engine is created lazily so the API process never needs psycopg2
# until something actually asks for a sync session.
#
# SESSION LIFECYCLE:
#   async: get_async_session → yield → commit (or rollback on error) → close
#   sync:  `with factory() as session, session.begin():` per unit of work
#
# COMMIT POLICY:
# get_async_session auto-commits when the handler returns. Handlers that must
# act after the data is durable (the upload endpoint dispatches the trigger
# task) call `await session.commit()` themselves before doing so.
# =============================================================================

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from docsearch.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Async Engine
# ---------------------------------------------------------------------------
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=5,
    max_overflow=10,
)

# expire_on_commit=False: ORM objects stay readable after commit, which the
# upload handler relies on when it builds its response.
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Sync Engine — Lazy Initialization
# ---------------------------------------------------------------------------

_sync_engine = None
_sync_session_factory = None


def _get_sync_engine():
    """Lazily create and cache the sync SQLAlchemy engine."""
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = create_engine(
            settings.database_url_sync,
            echo=settings.debug,
            pool_size=5,
            max_overflow=10,
        )
    return _sync_engine


def get_sync_session_factory() -> sessionmaker:
    """Lazily create and cache the sync session factory."""
    global _sync_session_factory
    if _sync_session_factory is None:
        _sync_session_factory = sessionmaker(
            bind=_get_sync_engine(),
            class_=Session,
            expire_on_commit=False,
        )
    return _sync_session_factory


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The session commits when the handler returns and rolls back if it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Create the pgvector extension and all ORM tables if they don't exist.

    Called once from the FastAPI lifespan. Schema changes beyond "create if
    missing" are out of scope; drop and recreate the dev database instead.
    """
    from docsearch.db.models import Base

    async with async_engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (embedding dimensions=%d)", settings.embedding_dimensions)

# =============================================================================
# Embedding Batch Runner
# =============================================================================
#
# Fills the embedding column for a set of rows identified by id:
#
#   run_batch(ids, table, content_column, embedding_column) -> BatchResult
#
# ALGORITHM:
#   1. Select (id, content) WHERE id IN ids AND embedding IS NULL.
#      Failure here raises RowSelectionError; nothing has been written.
#   2. For each row, serially:
#        content empty        → skip, log
#        sanitize → None      → skip, log (too short after cleaning)
#        embed                → EmbeddingError after retries → failed, log
#        persist              → own transaction; error → failed, log
#   3. Return the per-row outcome. The batch never raises after step 1.
#
# No transaction spans more than one row. Re-running a batch is harmless:
# rows that already have an embedding are not selected, and a row included
# again after its embedding was cleared is simply overwritten.
#
# Table and column names come from the request body. They are resolved
# against the ORM metadata, never interpolated into SQL.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import Table, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docsearch.db.engine import get_sync_session_factory
from docsearch.db.models import Base
from docsearch.errors import EmbeddingError, RowSelectionError
from docsearch.services.embedder import EmbeddingAdapter, get_embedding_adapter
from docsearch.services.sanitizer import sanitize_content

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class BatchResult:
    """Per-row outcome of one batch run."""

    table: str
    embedded: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def selected(self) -> int:
        return len(self.embedded) + len(self.skipped) + len(self.failed)


class SectionRepository(Protocol):
    """Row access the batch runner needs. Implemented over SQL and in tests."""

    def select_unembedded(
        self,
        ids: Sequence[int],
        table: str,
        content_column: str,
        embedding_column: str,
    ) -> list[tuple[int, str | None]]:
        ...

    def save_embedding(
        self,
        table: str,
        embedding_column: str,
        row_id: int,
        embedding: list[float],
    ) -> None:
        ...


# ---------------------------------------------------------------------------
# SQL Repository
# ---------------------------------------------------------------------------


class SqlSectionRepository:
    """
    SectionRepository backed by the sync SQLAlchemy engine.

    Args:
        session_factory: Callable returning a new Session. Defaults to the
            application's lazily-created sync session factory.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None):
        self._session_factory = session_factory

    def _new_session(self) -> Session:
        factory = self._session_factory or get_sync_session_factory()
        return factory()

    @staticmethod
    def _resolve(table: str, *columns: str) -> Table:
        resolved = Base.metadata.tables.get(table)
        if resolved is None:
            raise RowSelectionError(f"Unknown table '{table}'")
        for name in ("id", *columns):
            if name not in resolved.c:
                raise RowSelectionError(f"Unknown column '{name}' on table '{table}'")
        return resolved

    def select_unembedded(
        self,
        ids: Sequence[int],
        table: str,
        content_column: str,
        embedding_column: str,
    ) -> list[tuple[int, str | None]]:
        t = self._resolve(table, content_column, embedding_column)
        stmt = (
            select(t.c.id, t.c[content_column])
            .where(t.c.id.in_(list(ids)))
            .where(t.c[embedding_column].is_(None))
            .order_by(t.c.id)
        )
        try:
            with self._new_session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise RowSelectionError(f"Failed to select rows from '{table}': {exc}") from exc
        return [(row[0], row[1]) for row in rows]

    def save_embedding(
        self,
        table: str,
        embedding_column: str,
        row_id: int,
        embedding: list[float],
    ) -> None:
        t = self._resolve(table, embedding_column)
        stmt = update(t).where(t.c.id == row_id).values({embedding_column: embedding})
        with self._new_session() as session, session.begin():
            session.execute(stmt)


def get_section_repository() -> SectionRepository:
    """FastAPI dependency returning the SQL-backed repository."""
    return SqlSectionRepository()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run_batch(
    ids: Sequence[int],
    table: str,
    content_column: str,
    embedding_column: str,
    *,
    repository: SectionRepository | None = None,
    adapter: EmbeddingAdapter | None = None,
    max_length: int | None = None,
    min_length: int | None = None,
) -> BatchResult:
    """
    Embed every still-unembedded row among `ids`.

    Raises:
        RowSelectionError: the initial row selection failed.
        ConfigurationError: the embedding backend is not configured. Every
            row would fail the same way, so the batch stops.

    Other per-row failures are recorded in the result.
    """
    repo = repository if repository is not None else SqlSectionRepository()
    _adapter = adapter if adapter is not None else get_embedding_adapter()
    result = BatchResult(table=table)

    rows = repo.select_unembedded(ids, table, content_column, embedding_column)
    logger.info(
        "Embedding batch: %d of %d requested %s rows need embeddings",
        len(rows), len(ids), table,
    )

    for row_id, content in rows:
        if not content:
            logger.error(
                "No content available in column '%s' for %s id %s",
                content_column, table, row_id,
            )
            result.skipped.append(row_id)
            continue

        clean = sanitize_content(content, max_length=max_length, min_length=min_length)
        if clean is None:
            logger.info("Skipping %s id %s: content too short after cleaning", table, row_id)
            result.skipped.append(row_id)
            continue

        try:
            embedding = _adapter.embed(clean)
        except EmbeddingError as exc:
            logger.error(
                "Failed to generate embedding for %s id %s (content length=%d): %s",
                table, row_id, len(content), exc,
            )
            result.failed.append(row_id)
            continue

        try:
            repo.save_embedding(table, embedding_column, row_id, embedding)
        except Exception:
            logger.exception(
                "Failed to save embedding on '%s' table with id %s", table, row_id,
            )
            result.failed.append(row_id)
            continue

        logger.info("Generated embedding for %s id %s", table, row_id)
        result.embedded.append(row_id)

    logger.info(
        "Embedding batch complete for %s: embedded=%d skipped=%d failed=%d",
        table, len(result.embedded), len(result.skipped), len(result.failed),
    )
    return result

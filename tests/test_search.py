# =============================================================================
# Unit Tests — Section Search
# =============================================================================
#
# The session is mocked; the generated statement is compiled with the
# PostgreSQL dialect to check the operator and the owner scoping.
# =============================================================================

from __future__ import annotations

import asyncio
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql

from docsearch.services.embedder import EmbeddingAdapter
from docsearch.services.search import search_sections


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class RecordingModel:
    def __init__(self):
        self.calls: list[str] = []

    def run(self, text):
        self.calls.append(text)
        return [1.0, 0.0, 0.0]


def _session(rows):
    result = MagicMock()
    result.all.return_value = rows
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    return session


def _sql(session) -> str:
    stmt = session.execute.await_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestSearchSections:

    def test_similarity_is_negated_inner_product_distance(self):
        rows = [
            SimpleNamespace(id=1, document_id=10, content="best", distance=-0.9),
            SimpleNamespace(id=2, document_id=10, content="next", distance=-0.4),
        ]
        model = RecordingModel()
        adapter = EmbeddingAdapter(model=model, dimensions=4, max_retries=1)

        matches = _run(search_sections(_session(rows), adapter, "*revenue* growth", match_count=2))

        assert [m.section_id for m in matches] == [1, 2]
        assert [m.similarity for m in matches] == [0.9, 0.4]
        assert model.calls == ["revenue growth"]

    def test_orders_by_inner_product_operator(self):
        session = _session([])
        adapter = EmbeddingAdapter(model=RecordingModel(), dimensions=4, max_retries=1)

        _run(search_sections(session, adapter, "query", match_count=5, match_threshold=0.2))

        sql = _sql(session)
        assert "<#>" in sql
        assert "ORDER BY" in sql
        assert "documents.created_by" not in sql

    def test_owner_filter_joins_documents(self):
        session = _session([])
        adapter = EmbeddingAdapter(model=RecordingModel(), dimensions=4, max_retries=1)

        _run(search_sections(session, adapter, "query", owner_id=uuid.uuid4()))

        sql = _sql(session)
        assert "JOIN documents" in sql
        assert "documents.created_by" in sql

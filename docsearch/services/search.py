# =============================================================================
# Section Search — Inner-Product Similarity over Document Sections
# =============================================================================
#
# Embeds the query with the same EmbeddingAdapter used for sections, so query
# and section vectors share the width and the zero-padding layout.
#
# pgvector's `<#>` operator (max_inner_product) returns the NEGATIVE inner
# product. Ordering by it ascending puts the most similar sections first and
# matches the HNSW vector_ip_ops index. The reported similarity is the
# positive inner product (cosine similarity for normalized embeddings).
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docsearch.config import settings
from docsearch.db.models import Document, DocumentSection
from docsearch.services.embedder import EmbeddingAdapter
from docsearch.services.sanitizer import sanitize_content

logger = logging.getLogger(__name__)


@dataclass
class SectionMatch:
    """A section ranked against a query."""

    section_id: int
    document_id: int
    content: str
    similarity: float


async def search_sections(
    session: AsyncSession,
    adapter: EmbeddingAdapter,
    query: str,
    match_count: int | None = None,
    match_threshold: float | None = None,
    owner_id: uuid.UUID | None = None,
) -> list[SectionMatch]:
    """
    Return the sections most similar to `query`, best first.

    The query goes through the same sanitizer as section content; a query
    with nothing left after cleaning is embedded as-is.

    Args:
        owner_id: When given, only sections of documents created by this
            identity are considered.
    """
    _count = match_count or settings.search_match_count
    _threshold = (
        settings.search_match_threshold if match_threshold is None else match_threshold
    )

    query_text = sanitize_content(query, min_length=1) or query
    # The adapter is sync (and may sleep between retries)
    query_embedding = await asyncio.to_thread(adapter.embed, query_text)

    distance = DocumentSection.embedding.max_inner_product(query_embedding)
    stmt = (
        select(
            DocumentSection.id,
            DocumentSection.document_id,
            DocumentSection.content,
            distance.label("distance"),
        )
        .where(DocumentSection.embedding.is_not(None))
        .where(distance < -_threshold)
        .order_by(distance)
        .limit(_count)
    )
    if owner_id is not None:
        stmt = stmt.join(Document, Document.id == DocumentSection.document_id).where(
            Document.created_by == owner_id
        )

    rows = (await session.execute(stmt)).all()
    matches = [
        SectionMatch(
            section_id=row.id,
            document_id=row.document_id,
            content=row.content,
            similarity=-float(row.distance),
        )
        for row in rows
    ]
    logger.info("Search returned %d of max %d sections", len(matches), _count)
    return matches

# =============================================================================
# Document Processor — Stored Object → Document Sections
# =============================================================================
#
# Logic behind POST /process:
#
#   1. Look up the document joined with its storage object path.
#   2. Download the object from the monitored bucket.
#   3. Decode and segment the markdown (black-box `segment`).
#   4. Insert one document_sections row per section (embedding = NULL).
#   5. Return the new section ids so embeddings can be scheduled.
#
# Any failure raises a PipelineError subclass whose message is the `error`
# string the endpoint returns. A document whose sections were never written
# stays valid; there is nothing to roll back.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docsearch.config import settings
from docsearch.db.models import Document, DocumentSection, StorageObject
from docsearch.errors import DocumentNotFoundError, SectionPersistenceError
from docsearch.services.segmenter import MarkdownSection, segment_markdown
from docsearch.services.storage import ObjectStorage

logger = logging.getLogger(__name__)

Segmenter = Callable[[str], Sequence[MarkdownSection]]


@dataclass
class DocumentWithPath:
    """A document row plus the path of its stored object."""

    id: int
    name: str
    storage_object_path: str | None
    bucket_id: str | None


async def get_document_with_path(
    session: AsyncSession,
    document_id: int,
) -> DocumentWithPath | None:
    """Document joined with its storage object; None if the document is missing."""
    stmt = (
        select(Document.id, Document.name, StorageObject.name, StorageObject.bucket_id)
        .join(StorageObject, StorageObject.id == Document.storage_object_id)
        .where(Document.id == document_id)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        return None
    return DocumentWithPath(
        id=row[0],
        name=row[1],
        storage_object_path=row[2],
        bucket_id=row[3],
    )


async def process_document(
    session: AsyncSession,
    storage: ObjectStorage,
    document_id: int,
    segment: Segmenter = segment_markdown,
) -> list[int]:
    """
    Parse a document's stored file into sections.

    Returns:
        Ids of the inserted sections, in document order.

    Raises:
        DocumentNotFoundError: no document, or it has no storage path.
        StorageDownloadError: the stored object could not be read.
        SectionPersistenceError: the sections insert failed.
    """
    logger.info("Processing document_id=%s", document_id)

    document = await get_document_with_path(session, document_id)
    if document is None or not document.storage_object_path:
        logger.error("Document not found or missing storage path: %s", document_id)
        raise DocumentNotFoundError("Failed to find uploaded document")

    data = storage.download(document.bucket_id or settings.storage_bucket, document.storage_object_path)
    contents = data.decode("utf-8", errors="replace")
    logger.info("Downloaded %s (%d chars)", document.storage_object_path, len(contents))

    sections = [s for s in segment(contents) if s.content.strip()]
    if not sections:
        logger.warning("Document %d produced no sections", document_id)
        return []

    try:
        rows = [DocumentSection(document_id=document_id, content=s.content) for s in sections]
        session.add_all(rows)
        # Flush assigns ids before the commit
        await session.flush()
        section_ids = [row.id for row in rows]
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Failed to insert document sections for %d: %s", document_id, exc)
        raise SectionPersistenceError("Failed to save document sections") from exc

    logger.info(
        "Saved %d sections for file '%s' (document_id=%d)",
        len(section_ids), document.name, document_id,
    )
    return section_ids

# =============================================================================
# Ingestion Trigger — New Stored Object → Document + Processing Call
# =============================================================================
#
# Reacts to a freshly recorded StorageObject:
#
#   1. Ignore objects outside the monitored bucket (settings.storage_bucket).
#   2. Insert a Document row (name from the object path, owner from the
#      object's owner).
#   3. Once the transaction is committed, fire the processing call for the
#      new document through the `dispatch_processing` Celery task.
#
# Step 3 is fire-and-forget: the upload has already succeeded, and a failed
# processing call is only visible in the worker's logs / task state.
#
# The bearer credential for the processing call is read from SERVICE_TOKEN
# at dispatch time. It is never part of the code, the schema or the event.
# =============================================================================

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from docsearch.config import settings
from docsearch.db.models import Document, StorageObject

logger = logging.getLogger(__name__)


def document_name_for(obj: StorageObject) -> str:
    """
    Document name for an object path.

    Upload paths are '<owner>/<filename>', so the filename is the second
    path segment; single-segment paths use that segment.
    """
    tokens = obj.path_tokens
    if len(tokens) >= 2:
        return tokens[1]
    return tokens[-1] if tokens else obj.name


async def handle_object_created(
    session: AsyncSession,
    obj: StorageObject,
    bucket: str | None = None,
) -> int | None:
    """
    Create the Document for a newly stored object.

    Args:
        session: Session holding the StorageObject insert. The document is
            added to the same transaction.
        obj: The stored object.
        bucket: Monitored bucket. Defaults to settings.storage_bucket.

    Returns:
        The new document id, or None when the object's bucket is not
        monitored (no row is created in that case).
    """
    monitored = bucket or settings.storage_bucket
    logger.info("Storage trigger fired for bucket: %s, path: %s", obj.bucket_id, obj.name)

    if obj.bucket_id != monitored:
        logger.info("Skipping object in non-monitored bucket: %s", obj.bucket_id)
        return None

    doc = Document(
        name=document_name_for(obj),
        storage_object_id=obj.id,
        created_by=obj.owner,
    )
    session.add(doc)
    await session.flush()

    logger.info("Document created with ID: %d for file: %s", doc.id, doc.name)
    return doc.id


def fire_processing(document_id: int) -> None:
    """
    Queue the processing call for `document_id` without waiting on it.

    Enqueue errors (broker down) are logged and swallowed: the upload that
    triggered this has already been committed.
    """
    from docsearch.workers.tasks import dispatch_processing

    try:
        task = dispatch_processing.delay(document_id)
    except Exception:
        logger.exception("Failed to enqueue processing for document_id=%d", document_id)
        return
    logger.info("Queued processing call: document_id=%d, task_id=%s", document_id, task.id)

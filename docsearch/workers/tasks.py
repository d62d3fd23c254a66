# =============================================================================
# Celery Task Definitions
# =============================================================================
#
# dispatch_processing(document_id)
#   POST {functions_base_url}/process with {"document_id": id} and the service
#   bearer token. Transport errors and 5xx responses are retried by Celery
#   (3 times, 10s apart); a 4xx response fails the task at once. A task that
#   gives up stays FAILED; the upload that queued it is never affected.
#
# embed_sections(ids, table, content_column, embedding_column)
#   Runs one embedding batch in the worker. Per-row failures are handled by
#   the batch runner; only a failed row selection fails the task.
#
# IMPORTANT: Celery workers are SYNCHRONOUS. Use the sync session/engine,
# never the async one.
# =============================================================================

import logging

import httpx

from docsearch.config import settings
from docsearch.errors import ConfigurationError
from docsearch.services.batch import run_batch
from docsearch.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="dispatch_processing",
    max_retries=3,
    default_retry_delay=10,
)
def dispatch_processing(self, document_id: int) -> dict:
    """
    Call the processing endpoint for a new document.

    Returns:
        dict with the document id and the endpoint's status code.
    """
    if not settings.service_token:
        # Not retried: the configuration won't fix itself between attempts.
        raise ConfigurationError("SERVICE_TOKEN is not configured")

    url = f"{settings.functions_base_url.rstrip('/')}/process"
    logger.info("Calling process endpoint %s for document_id=%d", url, document_id)

    try:
        response = httpx.post(
            url,
            json={"document_id": document_id},
            headers={"Authorization": f"Bearer {settings.service_token}"},
            timeout=settings.dispatch_timeout,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            "[%s] Process call for document_id=%d returned %d",
            self.request.id, document_id, exc.response.status_code,
        )
        if exc.response.is_server_error:
            raise self.retry(exc=exc)
        # 4xx: a bad token or body is rejected the same way every time.
        raise
    except httpx.HTTPError as exc:
        logger.error(
            "[%s] Process call failed for document_id=%d: %s",
            self.request.id, document_id, exc,
        )
        raise self.retry(exc=exc)

    logger.info(
        "Process call for document_id=%d returned %d",
        document_id, response.status_code,
    )
    return {"document_id": document_id, "status_code": response.status_code}


@celery_app.task(name="embed_sections")
def embed_sections(
    ids: list[int],
    table: str = "document_sections",
    content_column: str = "content",
    embedding_column: str = "embedding",
) -> dict:
    """Embed one batch of rows. Returns the per-row outcome."""
    result = run_batch(ids, table, content_column, embedding_column)
    return {
        "table": result.table,
        "embedded": result.embedded,
        "skipped": result.skipped,
        "failed": result.failed,
    }


def schedule_embeddings(section_ids: list[int], batch_size: int | None = None) -> int:
    """
    Queue embed_sections for `section_ids` in batches.

    Returns:
        Number of tasks queued.
    """
    _batch_size = batch_size or settings.embedding_batch_size
    queued = 0
    for i in range(0, len(section_ids), _batch_size):
        batch = section_ids[i : i + _batch_size]
        embed_sections.delay(batch)
        queued += 1
    logger.info(
        "Queued %d embedding batches for %d sections", queued, len(section_ids),
    )
    return queued

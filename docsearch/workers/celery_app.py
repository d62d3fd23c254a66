# =============================================================================
# Celery Application Configuration
# =============================================================================
#
# Background work in this project is limited to two decoupled calls:
#
#   dispatch_processing: the ingestion trigger's fire-and-forget POST to
#                         the processing endpoint
#   embed_sections:      one embedding batch for freshly inserted sections
#
# ┌──────────┐     ┌───────┐     ┌──────────────┐
# │ FastAPI  │────▶│ Redis │────▶│ Celery Worker│──▶ POST /process
# │ (producer)│    │(broker)│    │ (consumer)    │──▶ run_batch()
# └──────────┘     └───────┘     └──────────────┘
# =============================================================================

from celery import Celery

from docsearch.config import settings

celery_app = Celery(
    "docsearch.workers",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # JSON only; task arguments are ids and table/column names.
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Re-queue a task if its worker dies mid-run. Both tasks are idempotent:
    # a repeated embed batch skips rows that already have embeddings.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # An embed batch of 10 rows with worst-case retries stays well under this.
    task_soft_time_limit=300,
    task_time_limit=600,

    result_expires=3600,

    include=["docsearch.workers.tasks"],
)

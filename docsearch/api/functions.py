# =============================================================================
# Function Endpoints — Process, Embed, Search
# =============================================================================
#
#   POST /process  {document_id}                                  → 204
#   POST /embed    {ids, table, contentColumn, embeddingColumn}   → 204
#   POST /search   {query, match_count, match_threshold, owner_id} → 200
#
# Failures are raised as PipelineError and rendered as 500 {"error": ...} by
# the handler registered in docsearch.main.
#
# /embed answers 204 once its rows were selected, even if every row failed;
# individual row failures only show up in the logs.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from docsearch.api.deps import require_service_token
from docsearch.db.engine import get_async_session
from docsearch.models.requests import EmbedRequest, ProcessRequest, SearchRequest
from docsearch.models.responses import ErrorResponse, SearchResponse, SectionMatchResponse
from docsearch.services.batch import SectionRepository, get_section_repository, run_batch
from docsearch.services.embedder import EmbeddingAdapter, get_embedding_adapter
from docsearch.services.processor import process_document
from docsearch.services.search import search_sections
from docsearch.services.storage import ObjectStorage, get_object_storage
from docsearch.workers.tasks import schedule_embeddings

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Functions"],
    dependencies=[Depends(require_service_token)],
    responses={500: {"model": ErrorResponse}},
)


@router.post("/process", status_code=204, summary="Split a stored document into sections")
async def process_endpoint(
    request: ProcessRequest,
    session: AsyncSession = Depends(get_async_session),
    storage: ObjectStorage = Depends(get_object_storage),
) -> Response:
    section_ids = await process_document(session, storage, request.document_id)

    if section_ids:
        try:
            schedule_embeddings(section_ids)
        except Exception:
            # Sections are committed; POST /embed can pick them up later.
            logger.exception(
                "Failed to schedule embeddings for document_id=%d", request.document_id,
            )

    return Response(status_code=204)


@router.post("/embed", status_code=204, summary="Embed a batch of rows")
def embed_endpoint(
    request: EmbedRequest,
    adapter: EmbeddingAdapter = Depends(get_embedding_adapter),
    repository: SectionRepository = Depends(get_section_repository),
) -> Response:
    # Sync handler: FastAPI runs it in the threadpool, and the batch runner
    # blocks on the sync engine and on retry backoff.
    run_batch(
        request.ids,
        request.table,
        request.content_column,
        request.embedding_column,
        repository=repository,
        adapter=adapter,
    )
    return Response(status_code=204)


@router.post("/search", response_model=SearchResponse, summary="Similarity search over sections")
async def search_endpoint(
    request: SearchRequest,
    session: AsyncSession = Depends(get_async_session),
    adapter: EmbeddingAdapter = Depends(get_embedding_adapter),
) -> SearchResponse:
    matches = await search_sections(
        session,
        adapter,
        request.query,
        match_count=request.match_count,
        match_threshold=request.match_threshold,
        owner_id=request.owner_id,
    )
    return SearchResponse(
        matches=[SectionMatchResponse.model_validate(m) for m in matches],
    )

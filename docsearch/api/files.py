# =============================================================================
# Files API — Upload into a Storage Bucket
# =============================================================================
#
# POST /files stores the upload, records its StorageObject row and runs the
# ingestion trigger on it. For the monitored bucket a Document is created in
# the same transaction; after the commit the processing call is queued.
#
# 201 Created: the object exists. 409 Conflict: the name is already taken.
# Processing happens later; its outcome is not reported back to the uploader.
# =============================================================================

import logging
import uuid

from fastapi import APIRouter, Depends, File, Header, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from docsearch.config import settings
from docsearch.db.engine import get_async_session
from docsearch.models.responses import UploadResponse
from docsearch.services.storage import (
    InvalidObjectName,
    ObjectAlreadyExists,
    ObjectStorage,
    build_object_name,
    get_object_storage,
)
from docsearch.services.trigger import fire_processing, handle_object_created

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


@router.post(
    "/files",
    response_model=UploadResponse,
    status_code=201,
    summary="Upload a document into a storage bucket",
)
async def upload_file(
    file: UploadFile = File(..., description="Markdown or plain-text document"),
    bucket: str | None = Query(
        default=None,
        description="Target bucket. Defaults to the monitored bucket.",
    ),
    owner_id: uuid.UUID | None = Header(default=None, alias="X-Owner-Id"),
    session: AsyncSession = Depends(get_async_session),
    storage: ObjectStorage = Depends(get_object_storage),
) -> UploadResponse:
    target_bucket = bucket or settings.storage_bucket

    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded file has no filename.")

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")

    try:
        name = build_object_name(owner_id, file.filename)
        obj = await storage.put(session, target_bucket, name, data, owner=owner_id)
    except InvalidObjectName as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ObjectAlreadyExists as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    document_id = await handle_object_created(session, obj)

    # The processing call must not race the insert it depends on.
    await session.commit()

    if document_id is not None:
        fire_processing(document_id)

    return UploadResponse(
        object_id=obj.id,
        bucket=obj.bucket_id,
        name=obj.name,
        document_id=document_id,
    )

# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Embedding vectors are never part of a response; search results carry the
# section text and its similarity only.
# =============================================================================

import uuid

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "ok"
    version: str
    service: str


class ErrorResponse(BaseModel):
    """Body of every 500 returned by the function endpoints."""

    error: str


class UploadResponse(BaseModel):
    """Response for POST /files."""

    object_id: uuid.UUID
    bucket: str
    name: str
    document_id: int | None = Field(
        default=None,
        description="Created document; null when the bucket is not monitored",
    )


class SectionMatchResponse(BaseModel):
    section_id: int
    document_id: int
    content: str
    similarity: float

    model_config = ConfigDict(from_attributes=True)


class SearchResponse(BaseModel):
    """Response for POST /search, best match first."""

    matches: list[SectionMatchResponse] = Field(default_factory=list)

# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Bodies accepted by the function endpoints. Field names follow the wire
# format the callers already send (`document_id`, `contentColumn`, ...);
# camelCase fields are exposed as snake_case attributes through aliases.
# =============================================================================

import uuid

from pydantic import BaseModel, ConfigDict, Field


class ProcessRequest(BaseModel):
    """Body for POST /process, sent by the ingestion trigger."""

    document_id: int = Field(..., description="Document to split into sections", examples=[1])


class EmbedRequest(BaseModel):
    """
    Body for POST /embed: one embedding batch.

    Example:
        {
            "ids": [1, 2, 3],
            "table": "document_sections",
            "contentColumn": "content",
            "embeddingColumn": "embedding"
        }
    """

    ids: list[int] = Field(..., description="Row ids to embed (rows with an embedding are skipped)")
    table: str = Field(default="document_sections")
    content_column: str = Field(default="content", alias="contentColumn")
    embedding_column: str = Field(default="embedding", alias="embeddingColumn")

    model_config = ConfigDict(populate_by_name=True)


class SearchRequest(BaseModel):
    """Body for POST /search: similarity search over embedded sections."""

    query: str = Field(..., min_length=1, max_length=10000)
    match_count: int | None = Field(default=None, ge=1, le=100)
    match_threshold: float | None = Field(default=None, ge=-1.0, le=1.0)
    owner_id: uuid.UUID | None = Field(
        default=None,
        description="Only search documents created by this identity.",
    )

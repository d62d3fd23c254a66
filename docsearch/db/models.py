# =============================================================================
# Database Models — SQLAlchemy ORM
# =============================================================================
#
# SCHEMA OVERVIEW:
#
# ┌──────────────────┐     ┌──────────────────────┐     ┌──────────────────────────────┐
# │ storage_objects  │     │ documents            │     │ document_sections            │
# ├──────────────────┤     ├──────────────────────┤     ├──────────────────────────────┤
# │ id (uuid PK)     │◀──1─│ storage_object_id FK │     │ id (PK)                      │
# │ bucket_id        │     │ id (PK)              │──N─▶│ document_id (FK)             │
# │ name (path)      │     │ name                 │     │ content (text)               │
# │ owner (uuid)     │     │ created_by (uuid)    │     │ embedding (vector(1024))     │
# │ created_at       │     │ created_at           │     └──────────────────────────────┘
# └──────────────────┘     └──────────────────────┘
#
# - storage_objects mirrors the object store's own catalogue. A row insert is
#   the "new stored object" event handled by the ingestion trigger.
# - documents are created once per upload to the monitored bucket and never
#   updated afterwards.
# - document_sections.embedding stays NULL until the batch runner fills it.
#   Once written it always has exactly settings.embedding_dimensions values.
# - The HNSW index uses vector_ip_ops (inner product); search orders by
#   max_inner_product so the index is usable.
# =============================================================================

import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from docsearch.config import settings

# BIGINT identity on PostgreSQL; SQLite only autoincrements INTEGER keys.
BigIntegerKey = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class for all ORM models."""

    pass


class StorageObject(Base):
    """
    An object stored in a bucket.

    `name` is the object path inside the bucket, e.g. "<owner-uuid>/report.md".
    The bytes themselves live in the ObjectStorage backend, not in this table.
    """

    __tablename__ = "storage_objects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bucket_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    owner: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def path_tokens(self) -> list[str]:
        """Object path split on '/', empty segments dropped."""
        return [token for token in self.name.split("/") if token]

    def __repr__(self) -> str:
        return f"<StorageObject(id={self.id}, bucket='{self.bucket_id}', name='{self.name}')>"


class Document(Base):
    """An uploaded document. Created by the ingestion trigger; immutable."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(BigIntegerKey, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    storage_object_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("storage_objects.id"),
        nullable=False,
    )
    # Owning identity. Every read path that takes an owner scopes on this.
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    storage_object: Mapped["StorageObject"] = relationship("StorageObject")
    sections: Mapped[list["DocumentSection"]] = relationship(
        "DocumentSection",
        back_populates="document",
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, name='{self.name}')>"


class DocumentSection(Base):
    """
    A contiguous chunk of a parsed document, with an optional embedding.

    Rows are inserted by the document processor with embedding=NULL and
    picked up by the embedding batch runner.
    """

    __tablename__ = "document_sections"

    id: Mapped[int] = mapped_column(BigIntegerKey, primary_key=True, autoincrement=True)
    document_id: Mapped[int] = mapped_column(
        BigIntegerKey,
        ForeignKey("documents.id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(settings.embedding_dimensions),
        nullable=True,
    )

    document: Mapped["Document"] = relationship("Document", back_populates="sections")

    __table_args__ = (
        Index(
            "ix_document_sections_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_ip_ops"},
        ),
    )

    def __repr__(self) -> str:
        return f"<DocumentSection(id={self.id}, document_id={self.document_id})>"

# =============================================================================
# Object Storage — Local-Disk Buckets
# =============================================================================
#
# Minimal object store: a bucket is a directory under settings.storage_dir,
# an object is a file inside it, and every write records a StorageObject row.
# Recording the row is what fires the ingestion trigger (see trigger.py).
#
#   <storage_dir>/<bucket>/<owner-uuid>/<filename>
#
# Object names are validated so they cannot escape their bucket directory,
# and an existing object is never replaced.
# =============================================================================

from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePosixPath

from sqlalchemy.ext.asyncio import AsyncSession

from docsearch.config import settings
from docsearch.db.models import StorageObject
from docsearch.errors import StorageDownloadError

logger = logging.getLogger(__name__)


class InvalidObjectName(ValueError):
    """Raised for object names that are empty or escape the bucket."""


class ObjectAlreadyExists(FileExistsError):
    """Raised when an upload would replace an existing object."""


def build_object_name(owner: uuid.UUID | None, filename: str) -> str:
    """Object path for an upload: '<owner>/<filename>' (or '<filename>')."""
    safe_filename = PurePosixPath(filename.replace("\\", "/")).name
    if not safe_filename:
        raise InvalidObjectName(f"Invalid filename: {filename!r}")
    return f"{owner}/{safe_filename}" if owner else safe_filename


class ObjectStorage:
    """Buckets as directories on local disk."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.storage_dir)

    def _path_for(self, bucket: str, name: str) -> Path:
        parts = PurePosixPath(name).parts
        if not bucket or not parts or any(p in ("..", "/", "") for p in parts):
            raise InvalidObjectName(f"Invalid object path: {bucket!r}/{name!r}")
        if PurePosixPath(bucket).name != bucket or bucket in (".", ".."):
            raise InvalidObjectName(f"Invalid bucket name: {bucket!r}")
        return self.root.joinpath(bucket, *parts)

    async def put(
        self,
        session: AsyncSession,
        bucket: str,
        name: str,
        data: bytes,
        owner: uuid.UUID | None = None,
    ) -> StorageObject:
        """
        Write `data` to bucket/name and record the StorageObject row.

        The row is flushed (id assigned) but not committed; the caller's
        session owns the transaction.

        Raises:
            ObjectAlreadyExists: bucket/name is taken. Stored objects are
                never overwritten; documents keep pointing at their bytes.
        """
        path = self._path_for(bucket, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with path.open("xb") as fh:
                fh.write(data)
        except FileExistsError as exc:
            raise ObjectAlreadyExists(f"Object already exists: {bucket}/{name}") from exc

        obj = StorageObject(id=uuid.uuid4(), bucket_id=bucket, name=name, owner=owner)
        session.add(obj)
        await session.flush()

        logger.info(
            "Stored object %s in bucket '%s' (%d bytes) → %s",
            name, bucket, len(data), path,
        )
        return obj

    def download(self, bucket: str, name: str) -> bytes:
        """
        Read an object's bytes.

        Raises:
            StorageDownloadError: the object is missing or unreadable.
        """
        try:
            return self._path_for(bucket, name).read_bytes()
        except (OSError, InvalidObjectName) as exc:
            logger.error("Failed to download %s/%s: %s", bucket, name, exc)
            raise StorageDownloadError("Failed to download storage object") from exc


def get_object_storage() -> ObjectStorage:
    """FastAPI dependency returning the configured storage backend."""
    return ObjectStorage()

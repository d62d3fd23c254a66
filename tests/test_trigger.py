# =============================================================================
# Unit Tests — Ingestion Trigger
# =============================================================================
#
# The async session is an AsyncMock; flush() assigns an id to the added
# Document the way the database would.
# =============================================================================

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

from docsearch.db.models import Document, StorageObject
from docsearch.services.trigger import (
    document_name_for,
    fire_processing,
    handle_object_created,
)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _fake_session(next_id: int = 42) -> MagicMock:
    session = MagicMock()
    added: list = []

    def add(obj):
        added.append(obj)

    async def flush():
        for obj in added:
            if isinstance(obj, Document) and obj.id is None:
                obj.id = next_id

    session.add.side_effect = add
    session.flush = AsyncMock(side_effect=flush)
    session.added = added
    return session


def _object(bucket: str = "files", name: str | None = None) -> StorageObject:
    owner = uuid.uuid4()
    return StorageObject(
        id=uuid.uuid4(),
        bucket_id=bucket,
        name=name or f"{owner}/quarterly-report.md",
        owner=owner,
    )


class TestHandleObjectCreated:

    def test_monitored_bucket_creates_document(self):
        session = _fake_session(next_id=7)
        obj = _object()

        document_id = _run(handle_object_created(session, obj, bucket="files"))

        assert document_id == 7
        assert len(session.added) == 1
        doc = session.added[0]
        assert isinstance(doc, Document)
        assert doc.name == "quarterly-report.md"
        assert doc.storage_object_id == obj.id
        assert doc.created_by == obj.owner

    def test_other_bucket_creates_nothing(self):
        session = _fake_session()
        obj = _object(bucket="avatars")

        document_id = _run(handle_object_created(session, obj, bucket="files"))

        assert document_id is None
        session.add.assert_not_called()
        session.flush.assert_not_awaited()

    def test_defaults_to_configured_bucket(self):
        session = _fake_session()
        with patch("docsearch.services.trigger.settings") as mock_settings:
            mock_settings.storage_bucket = "uploads"
            assert _run(handle_object_created(session, _object(bucket="files"))) is None
            assert _run(handle_object_created(session, _object(bucket="uploads"))) == 42


class TestDocumentName:

    def test_second_path_segment(self):
        assert document_name_for(_object(name="owner-id/notes.md")) == "notes.md"

    def test_single_segment_path(self):
        assert document_name_for(_object(name="notes.md")) == "notes.md"

    def test_nested_path_uses_second_segment(self):
        assert document_name_for(_object(name="owner/folder/notes.md")) == "folder"


class TestFireProcessing:

    def test_queues_dispatch_task(self):
        with patch("docsearch.workers.tasks.dispatch_processing") as task:
            task.delay.return_value = MagicMock(id="task-1")
            fire_processing(5)
        task.delay.assert_called_once_with(5)

    def test_enqueue_failure_does_not_raise(self):
        with patch("docsearch.workers.tasks.dispatch_processing") as task:
            task.delay.side_effect = ConnectionError("broker down")
            fire_processing(5)
        task.delay.assert_called_once_with(5)

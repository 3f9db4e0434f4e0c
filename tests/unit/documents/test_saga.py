"""Unit tests for the blob-then-metadata upload saga."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from conftest import chunks_of

from docvault.db.nosql.repository import RepositoryError
from docvault.documents.models import DocumentRecord
from docvault.documents.saga import TRANSITIONS, UploadSaga, UploadState
from docvault.storage.base import BlobStoreError


def _record_for(blob_id: str) -> DocumentRecord:
    return DocumentRecord(
        blob_id=blob_id,
        filename="a.pdf",
        size=6,
        owner_id=7,
        case_id=12,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.mark.documents
class TestTransitions:
    def test_terminal_states(self):
        assert TRANSITIONS[UploadState.META_WRITTEN] == frozenset()
        assert TRANSITIONS[UploadState.COMPENSATED] == frozenset()

    def test_every_state_has_an_entry(self):
        assert set(TRANSITIONS) == set(UploadState)


@pytest.mark.documents
@pytest.mark.asyncio
class TestUploadSaga:
    async def test_happy_path(self, blobs, repo):
        saga = UploadSaga(blobs, repo)
        stored = await saga.write_blob("a.pdf", chunks_of(b"abc", b"def"))
        assert saga.state is UploadState.BLOB_WRITTEN
        assert stored.size == 6

        record = await saga.write_metadata(_record_for(stored.blob_id))
        assert saga.state is UploadState.META_WRITTEN
        assert record.id is not None
        assert await blobs.exists(stored.blob_id)
        assert len(repo) == 1

    async def test_blob_failure_leaves_nothing_to_undo(self, blobs, repo):
        async def broken():
            yield b"abc"
            raise BlobStoreError("disk gone")

        saga = UploadSaga(blobs, repo)
        with pytest.raises(BlobStoreError):
            await saga.write_blob("a.pdf", broken())
        assert saga.state is UploadState.BLOB_PENDING
        assert len(blobs) == 0

    async def test_metadata_failure_compensates(self, blobs, repo):
        repo.insert = AsyncMock(side_effect=RepositoryError("insert failed"))
        saga = UploadSaga(blobs, repo)
        stored = await saga.write_blob("a.pdf", chunks_of(b"abc"))

        with pytest.raises(RepositoryError):
            await saga.write_metadata(_record_for(stored.blob_id))

        assert saga.state is UploadState.COMPENSATED
        assert not await blobs.exists(stored.blob_id)

    async def test_cancellation_during_metadata_compensates(self, blobs, repo):
        repo.insert = AsyncMock(side_effect=asyncio.CancelledError())
        saga = UploadSaga(blobs, repo)
        stored = await saga.write_blob("a.pdf", chunks_of(b"abc"))

        with pytest.raises(asyncio.CancelledError):
            await saga.write_metadata(_record_for(stored.blob_id))

        assert saga.state is UploadState.COMPENSATED
        assert len(blobs) == 0

    async def test_compensation_failure_is_swallowed(self, blobs, repo, caplog):
        """The metadata error still propagates; the orphaned blob is only logged."""
        repo.insert = AsyncMock(side_effect=RepositoryError("insert failed"))
        saga = UploadSaga(blobs, repo)
        stored = await saga.write_blob("a.pdf", chunks_of(b"abc"))
        blobs.delete = AsyncMock(side_effect=BlobStoreError("delete failed"))

        with caplog.at_level("WARNING", logger="docvault.documents.saga"):
            with pytest.raises(RepositoryError):
                await saga.write_metadata(_record_for(stored.blob_id))

        assert saga.state is UploadState.COMPENSATING
        assert "orphaned" in caplog.text

    async def test_compensation_tolerates_missing_blob(self, blobs, repo):
        repo.insert = AsyncMock(side_effect=RepositoryError("insert failed"))
        saga = UploadSaga(blobs, repo)
        stored = await saga.write_blob("a.pdf", chunks_of(b"abc"))
        await blobs.delete(stored.blob_id)

        with pytest.raises(RepositoryError):
            await saga.write_metadata(_record_for(stored.blob_id))
        assert saga.state is UploadState.COMPENSATED

    async def test_metadata_before_blob_is_illegal(self, blobs, repo):
        saga = UploadSaga(blobs, repo)
        with pytest.raises(RuntimeError):
            await saga.write_metadata(_record_for("65a1b2c3d4e5f60718293a4b"))

    async def test_blob_written_only_once(self, blobs, repo):
        saga = UploadSaga(blobs, repo)
        await saga.write_blob("a.pdf", chunks_of(b"abc"))
        with pytest.raises(RuntimeError):
            await saga.write_blob("a.pdf", chunks_of(b"abc"))

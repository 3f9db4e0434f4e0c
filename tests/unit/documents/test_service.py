"""Unit tests for DocumentService over the in-memory stores."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import StepClock, chunks_of, make_settings

from docvault.db.nosql.repository import RepositoryError
from docvault.documents.models import Page
from docvault.documents.service import DocumentService
from docvault.exceptions import (
    BadRequest,
    Forbidden,
    MetadataReadFailed,
    MetadataWriteFailed,
    NotFound,
    PayloadTooLarge,
    StorageReadFailed,
    StorageWriteFailed,
    Unauthorized,
)
from docvault.storage.base import BlobStoreError

MISSING_ID = "65a1b2c3d4e5f60718293a4b"


async def _upload(service, identity, case_id=12, data=b"%PDF-1.4 body", filename="a.pdf"):
    return await service.upload(identity, filename=filename, case_id=case_id, chunks=chunks_of(data))


async def _read(download) -> bytes:
    return b"".join([chunk async for chunk in download.reader])


@pytest.mark.documents
@pytest.mark.asyncio
class TestUpload:
    async def test_stores_blob_and_record(self, service, blobs, repo, cliente):
        result = await _upload(service, cliente, case_id="12", data=b"hello")

        assert result.filename == "a.pdf"
        assert result.size == 5
        assert result.case_id == 12
        assert await blobs.exists(result.blob_id)

        [record] = await service.list_own(cliente)
        assert record.blob_id == result.blob_id
        assert record.owner_id == cliente.subject_id
        assert record.created_at.tzinfo is not None

    async def test_owner_comes_from_identity(self, service, cliente, other_cliente):
        await _upload(service, cliente)
        assert await service.list_own(other_cliente) == []

    async def test_missing_filename(self, service, blobs, cliente):
        with pytest.raises(BadRequest) as exc_info:
            await _upload(service, cliente, filename="")
        assert exc_info.value.detail == "file is required"
        assert len(blobs) == 0

    @pytest.mark.parametrize("case_id", [None, "", "abc", "0", "-3"])
    async def test_invalid_case_rejected_before_io(self, service, blobs, repo, cliente, case_id):
        with pytest.raises(BadRequest):
            await _upload(service, cliente, case_id=case_id)
        assert len(blobs) == 0
        assert len(repo) == 0

    async def test_payload_at_limit_accepted(self, service, cliente, settings):
        result = await _upload(service, cliente, data=b"x" * settings.max_upload_bytes)
        assert result.size == settings.max_upload_bytes

    async def test_payload_over_limit_rejected(self, service, blobs, repo, cliente, settings):
        with pytest.raises(PayloadTooLarge):
            await _upload(service, cliente, data=b"x" * (settings.max_upload_bytes + 1))
        assert len(blobs) == 0
        assert len(repo) == 0

    async def test_blob_failure_writes_no_record(self, service, blobs, repo, cliente):
        blobs.write = AsyncMock(side_effect=BlobStoreError("gridfs down"))
        with pytest.raises(StorageWriteFailed):
            await _upload(service, cliente)
        assert len(repo) == 0

    async def test_metadata_failure_removes_blob(self, service, blobs, repo, cliente):
        repo.insert = AsyncMock(side_effect=RepositoryError("insert failed"))
        with pytest.raises(MetadataWriteFailed):
            await _upload(service, cliente)
        assert len(blobs) == 0


@pytest.mark.documents
@pytest.mark.asyncio
class TestListing:
    async def test_list_own_newest_first(self, service, cliente):
        first = await _upload(service, cliente, case_id=1)
        second = await _upload(service, cliente, case_id=2)

        records = await service.list_own(cliente)
        assert [r.blob_id for r in records] == [second.blob_id, first.blob_id]

    async def test_list_case_cliente_sees_only_own(self, service, cliente, other_cliente):
        mine = await _upload(service, cliente, case_id=12)
        await _upload(service, other_cliente, case_id=12)

        records = await service.list_case(cliente, "12")
        assert [r.blob_id for r in records] == [mine.blob_id]

    async def test_list_case_staff_see_every_owner(self, service, cliente, other_cliente, admin, operador):
        await _upload(service, cliente, case_id=12)
        await _upload(service, other_cliente, case_id=12)
        await _upload(service, other_cliente, case_id=13)

        assert len(await service.list_case(admin, 12)) == 2
        assert len(await service.list_case(operador, 12)) == 2

    async def test_list_case_invalid_id(self, service, admin):
        with pytest.raises(BadRequest):
            await service.list_case(admin, "abc")

    async def test_empty_listing(self, service, cliente):
        assert await service.list_own(cliente) == []
        assert await service.list_case(cliente, 99) == []

    async def test_read_failure(self, service, repo, cliente):
        repo.find = AsyncMock(side_effect=RepositoryError("find failed"))
        with pytest.raises(MetadataReadFailed):
            await service.list_own(cliente)


@pytest.mark.documents
@pytest.mark.asyncio
class TestListAll:
    async def test_exposed_listing_is_anonymous(self, service, cliente, other_cliente):
        await _upload(service, cliente)
        await _upload(service, other_cliente)
        assert len(await service.list_all()) == 2

    async def test_paging(self, service, cliente):
        uploaded = [await _upload(service, cliente, case_id=i) for i in range(1, 6)]
        newest_first = [u.blob_id for u in reversed(uploaded)]

        records = await service.list_all(Page(limit=2, offset=1))
        assert [r.blob_id for r in records] == newest_first[1:3]

    async def test_gated_listing(self, blobs, repo, cliente, admin):
        gated = DocumentService(
            make_settings(expose_unrestricted_listing=False), blobs, repo, clock=StepClock()
        )
        await _upload(gated, cliente)

        with pytest.raises(Unauthorized):
            await gated.list_all()
        with pytest.raises(Forbidden):
            await gated.list_all(identity=cliente)
        assert len(await gated.list_all(identity=admin)) == 1


@pytest.mark.documents
@pytest.mark.asyncio
class TestDownload:
    async def test_streams_payload(self, service, cliente):
        result = await _upload(service, cliente, data=b"%PDF-1.4 hello")

        download = await service.open_download(result.blob_id)
        assert download.media_type == "application/pdf"
        assert download.content_disposition == f"attachment; filename={result.blob_id}.pdf"
        assert download.reader.length == len(b"%PDF-1.4 hello")
        assert await _read(download) == b"%PDF-1.4 hello"

    async def test_invalid_id(self, service):
        with pytest.raises(BadRequest) as exc_info:
            await service.open_download("not-an-id")
        assert exc_info.value.detail == "invalid doc_id"

    async def test_missing(self, service):
        with pytest.raises(NotFound):
            await service.open_download(MISSING_ID)

    async def test_store_failure(self, service, blobs):
        blobs.open = AsyncMock(side_effect=BlobStoreError("read failed"))
        with pytest.raises(StorageReadFailed):
            await service.open_download(MISSING_ID)


@pytest.mark.documents
@pytest.mark.asyncio
class TestDelete:
    async def test_owner_deletes(self, service, blobs, repo, cliente):
        result = await _upload(service, cliente)

        await service.delete(cliente, result.blob_id)
        assert len(blobs) == 0
        assert len(repo) == 0

    async def test_other_cliente_forbidden(self, service, blobs, repo, cliente, other_cliente):
        result = await _upload(service, cliente)

        with pytest.raises(Forbidden):
            await service.delete(other_cliente, result.blob_id)
        assert await blobs.exists(result.blob_id)
        assert len(repo) == 1

    async def test_staff_delete_any(self, service, blobs, cliente, operador):
        result = await _upload(service, cliente)
        await service.delete(operador, result.blob_id)
        assert len(blobs) == 0

    async def test_missing_blob(self, service, admin):
        with pytest.raises(NotFound):
            await service.delete(admin, MISSING_ID)

    async def test_blob_failure_keeps_record(self, service, blobs, repo, cliente, admin):
        result = await _upload(service, cliente)
        blobs.delete = AsyncMock(side_effect=BlobStoreError("delete failed"))

        with pytest.raises(NotFound):
            await service.delete(admin, result.blob_id)
        assert len(repo) == 1

    async def test_metadata_failure_is_logged_only(self, service, blobs, repo, cliente, caplog):
        result = await _upload(service, cliente)
        repo.delete_by_blob_id = AsyncMock(side_effect=RepositoryError("delete failed"))

        with caplog.at_level("WARNING", logger="docvault.documents.service"):
            await service.delete(cliente, result.blob_id)
        assert len(blobs) == 0
        assert "orphaned" in caplog.text

    async def test_invalid_id(self, service, admin):
        with pytest.raises(BadRequest):
            await service.delete(admin, "xyz")

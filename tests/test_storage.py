"""
Tests for document/output stores (local directories and GCS).
"""
import os
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions

from signstamp.config import Settings
from signstamp.gcs import GCSClient, GCSDocumentStore, GCSOutputStore
from signstamp.pdf.errors import DocumentNotFoundError, PersistenceError
from signstamp.storage import LocalDocumentStore, LocalOutputStore, _safe_join, create_stores


class TestSafeJoin:
    def test_nested_location(self, temp_dir):
        path = _safe_join(temp_dir, "doc/signed/out.pdf")
        assert path == os.path.join(temp_dir, "doc", "signed", "out.pdf")

    @pytest.mark.parametrize("relative", ["", "../x.pdf", "a/../../x.pdf", "/etc/passwd"])
    def test_rejects_escapes(self, temp_dir, relative):
        with pytest.raises(ValueError):
            _safe_join(temp_dir, relative)


class TestLocalDocumentStore:
    @pytest.mark.asyncio
    async def test_read(self, document_store, sample_pdf_bytes):
        assert await document_store.read("doc-456") == sample_pdf_bytes

    @pytest.mark.asyncio
    async def test_missing_document(self, document_store):
        with pytest.raises(DocumentNotFoundError):
            await document_store.read("missing")


class TestLocalOutputStore:
    @pytest.mark.asyncio
    async def test_write_creates_directories(self, output_store, signed_dir):
        url = await output_store.write("doc/signed/out.pdf", b"%PDF")

        assert url == "/signed-files/doc/signed/out.pdf"
        with open(os.path.join(signed_dir, "doc", "signed", "out.pdf"), "rb") as f:
            assert f.read() == b"%PDF"

    @pytest.mark.asyncio
    async def test_never_overwrites(self, output_store):
        await output_store.write("doc/signed/out.pdf", b"first")
        with pytest.raises(PersistenceError):
            await output_store.write("doc/signed/out.pdf", b"second")

    @pytest.mark.asyncio
    async def test_delete(self, output_store, signed_dir):
        await output_store.write("doc/signed/out.pdf", b"%PDF")
        await output_store.delete("doc/signed/out.pdf")
        assert not os.path.exists(os.path.join(signed_dir, "doc", "signed", "out.pdf"))

    def test_base_url_trailing_slash(self, signed_dir):
        assert LocalOutputStore(signed_dir, base_url="/files/").base_url == "/files"


class TestCreateStores:
    def test_local_backend(self, temp_dir):
        settings = Settings(STORAGE_BACKEND="local", DOCUMENTS_DIR=temp_dir, SIGNED_DIR=temp_dir)
        document_store, output_store = create_stores(settings)
        assert isinstance(document_store, LocalDocumentStore)
        assert isinstance(output_store, LocalOutputStore)

    def test_gcs_backend(self):
        settings = Settings(STORAGE_BACKEND="gcs", GCS_BUCKET="bucket", GCS_DOCUMENTS_PREFIX="docs")
        document_store, output_store = create_stores(settings)
        assert isinstance(document_store, GCSDocumentStore)
        assert isinstance(output_store, GCSOutputStore)
        assert document_store._path("doc-456") == "docs/doc-456.pdf"


class TestGCSClient:
    def _client(self):
        client = GCSClient(Settings(GCS_BUCKET="bucket"))
        client._bucket = MagicMock()
        return client

    def test_download_missing_object(self):
        client = self._client()
        client._bucket.blob.return_value.download_as_bytes.side_effect = gcs_exceptions.NotFound("gone")
        with pytest.raises(FileNotFoundError):
            client.download_bytes("docs/doc-456.pdf")

    def test_upload_refuses_overwrite(self):
        client = self._client()
        client.upload_bytes("doc/signed/out.pdf", b"%PDF")

        blob = client._bucket.blob.return_value
        blob.upload_from_string.assert_called_once_with(
            b"%PDF", content_type="application/pdf", if_generation_match=0
        )


class TestGCSStores:
    @pytest.mark.asyncio
    async def test_document_not_found(self):
        client = MagicMock()
        client.download_bytes.side_effect = FileNotFoundError("gone")
        with pytest.raises(DocumentNotFoundError):
            await GCSDocumentStore(client).read("doc-456")

    @pytest.mark.asyncio
    async def test_write_returns_signed_url(self):
        client = MagicMock()
        client.generate_download_signed_url.return_value = "https://storage.example/signed?sig=1"

        url = await GCSOutputStore(client).write("doc/signed/out.pdf", b"%PDF")

        assert url == "https://storage.example/signed?sig=1"
        client.upload_bytes.assert_called_once_with("doc/signed/out.pdf", b"%PDF")

    @pytest.mark.asyncio
    async def test_upload_failure(self):
        client = MagicMock()
        client.upload_bytes.side_effect = gcs_exceptions.PreconditionFailed("exists")
        with pytest.raises(PersistenceError):
            await GCSOutputStore(client).write("doc/signed/out.pdf", b"%PDF")
        client.generate_download_signed_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_url_failure_removes_object(self):
        client = MagicMock()
        client.generate_download_signed_url.side_effect = auth_exceptions.RefreshError("no creds")

        with pytest.raises(PersistenceError):
            await GCSOutputStore(client).write("doc/signed/out.pdf", b"%PDF")
        client.delete.assert_called_once_with("doc/signed/out.pdf")

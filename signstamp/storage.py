"""
Document and output storage.

Two narrow interfaces:
- DocumentStore: read(document_id) -> source PDF bytes
- OutputStore:   write(location, data) -> caller-resolvable locator

Local-directory implementations live here; GCS ones in signstamp.gcs.
Filesystem calls run in the threadpool so they do not block the event loop.
"""
import logging
import os
from typing import Optional, Protocol

from starlette.concurrency import run_in_threadpool

from signstamp.config import Settings, get_settings
from signstamp.pdf.errors import DocumentNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def read(self, document_id: str) -> bytes:
        """Raises DocumentNotFoundError if the document does not exist."""
        ...


class OutputStore(Protocol):
    async def write(self, location: str, data: bytes) -> str:
        """Store bytes; returns a URL/path the caller can resolve. Raises PersistenceError."""
        ...

    async def delete(self, location: str) -> None:
        ...


def _safe_join(root: str, relative: str) -> str:
    """Join under root, rejecting traversal and absolute paths."""
    if not relative or ".." in relative.split("/") or relative.startswith("/"):
        raise ValueError(f"Invalid storage path: '{relative}'")
    return os.path.join(root, *relative.split("/"))


class LocalDocumentStore:
    """Reads {documents_dir}/{document_id}.pdf."""

    def __init__(self, documents_dir: str):
        self.documents_dir = documents_dir

    def _read(self, document_id: str) -> bytes:
        path = _safe_join(self.documents_dir, f"{document_id}.pdf")
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise DocumentNotFoundError(document_id)

    async def read(self, document_id: str) -> bytes:
        return await run_in_threadpool(self._read, document_id)


class LocalOutputStore:
    """
    Writes signed PDFs under signed_dir.
    Locator is {base_url}/{location}, served by the app's static mount.
    """

    def __init__(self, signed_dir: str, base_url: str = "/signed-files"):
        self.signed_dir = signed_dir
        self.base_url = base_url.rstrip("/")

    def _write(self, location: str, data: bytes) -> None:
        path = _safe_join(self.signed_dir, location)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        # "xb": never overwrite an existing signed output
        with open(path, "xb") as f:
            f.write(data)

    async def write(self, location: str, data: bytes) -> str:
        try:
            await run_in_threadpool(self._write, location, data)
        except OSError as e:
            raise PersistenceError(f"Failed to write signed PDF: {e}")
        logger.info(f"Wrote signed PDF to {location} ({len(data)} bytes)")
        return f"{self.base_url}/{location}"

    def _delete(self, location: str) -> None:
        os.remove(_safe_join(self.signed_dir, location))

    async def delete(self, location: str) -> None:
        await run_in_threadpool(self._delete, location)


def create_stores(settings: Optional[Settings] = None):
    """
    Build (document_store, output_store) for the configured backend.
    """
    settings = settings or get_settings()

    if settings.storage_backend == "gcs":
        from signstamp.gcs import GCSClient, GCSDocumentStore, GCSOutputStore

        client = GCSClient(settings)
        return GCSDocumentStore(client, settings.gcs_documents_prefix), GCSOutputStore(client)

    return (
        LocalDocumentStore(settings.documents_dir),
        LocalOutputStore(settings.signed_dir, settings.signed_files_base_url),
    )

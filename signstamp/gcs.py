"""
Google Cloud Storage client module.
Handles source document downloads, signed output uploads and signed URLs.
"""
import logging
from datetime import timedelta
from typing import Optional

import google.auth
from google.auth import exceptions as auth_exceptions
from google.api_core import exceptions as gcs_exceptions
from google.auth.transport.requests import Request
from google.cloud import storage
from google.cloud.storage import Blob
from starlette.concurrency import run_in_threadpool

from signstamp.config import get_settings, Settings
from signstamp.pdf.errors import DocumentNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class GCSClient:
    """Google Cloud Storage client wrapper."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    @property
    def bucket(self) -> storage.Bucket:
        if self._bucket is None:
            self._bucket = self.client.bucket(self.settings.gcs_bucket)
        return self._bucket

    def _generate_iam_signed_url(
        self,
        blob: Blob,
        method: str,
        expiration_delta: timedelta,
    ) -> str:
        """
        Generates a V4 signed URL using the runtime service account's identity (IAM).
        This is the recommended way for Cloud Run, App Engine, etc.
        """
        credentials, _ = google.auth.default()
        credentials.refresh(Request())

        return blob.generate_signed_url(
            version="v4",
            expiration=expiration_delta,
            method=method,
            service_account_email=credentials.service_account_email,
            access_token=credentials.token,
        )

    def generate_download_signed_url(
        self,
        gcs_path: str,
        expiration_minutes: Optional[int] = None,
    ) -> str:
        """Generate a V4 signed URL for downloading a file using IAM."""
        blob = self.bucket.blob(gcs_path)
        expiration_delta = timedelta(
            minutes=expiration_minutes or self.settings.gcs_signed_url_expiration_minutes
        )
        return self._generate_iam_signed_url(blob=blob, method="GET", expiration_delta=expiration_delta)

    def download_bytes(self, gcs_path: str) -> bytes:
        """Download an object. Raises FileNotFoundError if missing."""
        blob = self.bucket.blob(gcs_path)
        try:
            data = blob.download_as_bytes()
        except gcs_exceptions.NotFound:
            raise FileNotFoundError(f"File not found in GCS: {gcs_path}")
        logger.info(f"Downloaded {gcs_path} ({len(data)} bytes)")
        return data

    def upload_bytes(self, gcs_path: str, data: bytes, content_type: str = "application/pdf") -> str:
        """
        Upload bytes to a new object.
        if_generation_match=0 makes the upload fail instead of overwriting.
        """
        blob = self.bucket.blob(gcs_path)
        blob.upload_from_string(data, content_type=content_type, if_generation_match=0)
        logger.info(f"Uploaded {gcs_path} ({len(data)} bytes)")
        return gcs_path

    def delete(self, gcs_path: str) -> None:
        self.bucket.blob(gcs_path).delete()
        logger.info(f"Deleted {gcs_path}")


class GCSDocumentStore:
    """Reads source PDFs from {prefix}/{document_id}.pdf."""

    def __init__(self, client: GCSClient, prefix: str = "documents"):
        self.client = client
        self.prefix = prefix.strip("/")

    def _path(self, document_id: str) -> str:
        return f"{self.prefix}/{document_id}.pdf" if self.prefix else f"{document_id}.pdf"

    async def read(self, document_id: str) -> bytes:
        try:
            return await run_in_threadpool(self.client.download_bytes, self._path(document_id))
        except FileNotFoundError:
            raise DocumentNotFoundError(document_id)


class GCSOutputStore:
    """Uploads signed PDFs; locator is a V4 signed download URL."""

    def __init__(self, client: GCSClient):
        self.client = client

    async def write(self, location: str, data: bytes) -> str:
        try:
            await run_in_threadpool(self.client.upload_bytes, location, data)
        except (gcs_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise PersistenceError(f"Failed to upload signed PDF: {e}")

        try:
            return await run_in_threadpool(self.client.generate_download_signed_url, location)
        except (gcs_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            # An object nobody can be pointed at is removed again
            try:
                await self.delete(location)
            except gcs_exceptions.GoogleAPIError as delete_error:
                logger.error(f"Could not remove {location} after URL failure: {delete_error}")
            raise PersistenceError(f"Failed to sign download URL: {e}")

    async def delete(self, location: str) -> None:
        await run_in_threadpool(self.client.delete, location)

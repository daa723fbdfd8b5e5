"""
Signing orchestration: hash, parse, stamp, serialize, hash, persist, audit.

One call to ``SigningOrchestrator.sign`` is one independent unit of work. The
Document and EmbeddedImage it creates never leave the call; the only shared
objects are the injected collaborators.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from signstamp.models import AuditRecord
from signstamp.pdf.engine import PdfDocument
from signstamp.pdf.errors import PersistenceError
from signstamp.pdf.geometry import FieldPlacement
from signstamp.pdf.image import decode_image, parse_data_url
from signstamp.pdf.stamp import place_fields
from signstamp.storage import DocumentStore, OutputStore
from signstamp.supabase_client import AuditStore
from signstamp.utils.datetime_utils import epoch_millis, utc_now
from signstamp.utils.hashing import compute_bytes_hash
from signstamp.utils.logging import fingerprint, get_request_id

logger = logging.getLogger(__name__)


@dataclass
class SigningResult:
    ok: bool
    url: str
    original_hash: str
    signed_hash: str
    output_location: str
    signed_at: datetime


def build_output_location(document_id: str, signed_at: datetime) -> str:
    """
    Unique storage location for a signed PDF.

    The random suffix keeps two signings of the same document in the same
    millisecond apart.
    """
    return (
        f"{document_id}/signed/"
        f"{document_id}-signed-{epoch_millis(signed_at)}-{uuid.uuid4().hex[:8]}.pdf"
    )


class SigningOrchestrator:
    """Runs the signing pipeline against injected stores."""

    def __init__(
        self,
        document_store: DocumentStore,
        output_store: OutputStore,
        audit_store: AuditStore,
    ):
        self.document_store = document_store
        self.output_store = output_store
        self.audit_store = audit_store

    @staticmethod
    def _render(
        raw_document: bytes,
        image_data: bytes,
        mime_hint: Optional[str],
        fields: Sequence[FieldPlacement],
    ) -> bytes:
        """
        Parse, decode, place and serialize. CPU-bound; runs in the threadpool.
        """
        with PdfDocument.parse(raw_document) as document:
            image = decode_image(image_data, mime_hint)
            logger.info(
                f"Signature image {fingerprint(image_data, 'img_')}: "
                f"{image.format} {image.pixel_width}x{image.pixel_height} px, "
                f"{len(fields)} field(s) on {document.page_count}-page document"
            )
            place_fields(document, image, fields)
            return document.serialize()

    async def sign(
        self,
        document_id: str,
        raw_document: bytes,
        image_data: bytes,
        fields: Sequence[FieldPlacement],
        mime_hint: Optional[str] = None,
    ) -> SigningResult:
        """
        Stamp the signature image into every field and persist the result.

        Raises:
            CorruptDocumentError, UnsupportedFormatError, PageNotFoundError,
            DegenerateGeometryError, SerializationError, PersistenceError
        """
        original_hash = compute_bytes_hash(raw_document)

        signed_bytes = await run_in_threadpool(
            self._render, raw_document, image_data, mime_hint, list(fields)
        )
        signed_hash = compute_bytes_hash(signed_bytes)

        signed_at = utc_now()
        location = build_output_location(document_id, signed_at)
        url = await self.output_store.write(location, signed_bytes)

        record = AuditRecord(
            document_id=document_id,
            original_hash=original_hash,
            signed_hash=signed_hash,
            signed_at=signed_at,
            fields=[f.to_dict() for f in fields],
            output_location=location,
            request_id=get_request_id(),
        )
        try:
            await self.audit_store.append(record)
        except PersistenceError:
            await self._discard_output(location)
            raise
        except Exception as e:
            await self._discard_output(location)
            raise PersistenceError(f"Failed to write audit record: {e}") from e

        logger.info(
            f"Signed document {document_id}: original={original_hash[:12]}... "
            f"signed={signed_hash[:12]}... -> {location}"
        )
        return SigningResult(
            ok=True,
            url=url,
            original_hash=original_hash,
            signed_hash=signed_hash,
            output_location=location,
            signed_at=signed_at,
        )

    async def _discard_output(self, location: str) -> None:
        """Best-effort removal of an output whose audit record was not written."""
        try:
            await self.output_store.delete(location)
            logger.warning(f"Removed unaudited output {location}")
        except Exception as e:
            logger.error(f"Could not remove unaudited output {location}: {e}")

    async def sign_stored_document(
        self,
        document_id: str,
        signature_image: str,
        fields: List[FieldPlacement],
    ) -> SigningResult:
        """
        Read the source PDF from the document store and sign it.

        Args:
            document_id: Source document identifier
            signature_image: "data:<mime>;base64,<payload>" (or bare base64)
            fields: Placements in request order

        Raises:
            DocumentNotFoundError: If the document store has no such document
            (plus everything ``sign`` raises)
        """
        raw_document = await self.document_store.read(document_id)
        mime_hint, image_data = parse_data_url(signature_image)
        return await self.sign(document_id, raw_document, image_data, fields, mime_hint)

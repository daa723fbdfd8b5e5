"""
Signing pipeline errors.

Every failure in the stamping pipeline surfaces as one of these. Each carries
a stable machine-readable ``code``; the HTTP layer maps codes onto status
codes in ``signstamp.exceptions``.
"""
from typing import Optional


class SigningError(Exception):
    """Base class for signing pipeline failures."""

    code = "SIGNING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class DocumentNotFoundError(SigningError):
    """Source document does not exist in the document store."""

    code = "NOT_FOUND"

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class CorruptDocumentError(SigningError):
    """Source bytes could not be parsed as a PDF."""

    code = "CORRUPT_DOCUMENT"


class UnsupportedFormatError(SigningError):
    """Signature image is not in any supported raster format."""

    code = "UNSUPPORTED_FORMAT"


class PageNotFoundError(SigningError):
    """Field references a page the document does not have."""

    code = "PAGE_NOT_FOUND"

    def __init__(self, page: int, page_count: int):
        super().__init__(
            f"Page {page} does not exist. Document has {page_count} page(s)."
        )
        self.page = page
        self.page_count = page_count


class DegenerateGeometryError(SigningError):
    """Field box or image has a zero or invalid dimension."""

    code = "DEGENERATE_GEOMETRY"


class SerializationError(SigningError):
    """Mutated document could not be written back to bytes."""

    code = "SERIALIZATION_ERROR"


class PersistenceError(SigningError):
    """Signed output or audit record could not be stored."""

    code = "PERSISTENCE_ERROR"

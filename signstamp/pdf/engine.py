"""
PDF document engine backed by PyMuPDF (fitz).

Thin wrapper so the rest of the pipeline works with 1-indexed pages,
bottom-left-origin PlacementBoxes and our own error types.
"""
import logging
from typing import Dict, Tuple

import fitz  # PyMuPDF

from signstamp.pdf.errors import (
    CorruptDocumentError,
    PageNotFoundError,
    SerializationError,
    UnsupportedFormatError,
)
from signstamp.pdf.geometry import PlacementBox
from signstamp.pdf.image import EmbeddedImage

logger = logging.getLogger(__name__)


class PdfDocument:
    """A parsed PDF, owned by a single signing request."""

    def __init__(self, doc: fitz.Document):
        self._doc = doc
        # id(EmbeddedImage) -> xref of the image object already in this PDF
        self._image_xrefs: Dict[int, int] = {}

    @classmethod
    def parse(cls, data: bytes) -> "PdfDocument":
        """
        Parse PDF bytes.

        Raises:
            CorruptDocumentError: If the bytes are not a usable PDF
        """
        if not data:
            raise CorruptDocumentError("Document is empty")
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except RuntimeError as e:  # fitz.FileDataError and friends
            raise CorruptDocumentError(f"Invalid PDF file: {e}")

        if doc.needs_pass:
            doc.close()
            raise CorruptDocumentError("Document is encrypted")
        if doc.page_count == 0:
            doc.close()
            raise CorruptDocumentError("Document has no pages")
        return cls(doc)

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def _page(self, page_number: int) -> fitz.Page:
        if page_number < 1 or page_number > self._doc.page_count:
            raise PageNotFoundError(page_number, self._doc.page_count)
        return self._doc[page_number - 1]

    def page_size(self, page_number: int) -> Tuple[float, float]:
        """(width, height) in points of a 1-indexed page."""
        rect = self._page(page_number).rect
        return rect.width, rect.height

    def draw_image(self, page_number: int, image: EmbeddedImage, box: PlacementBox) -> None:
        """
        Draw an image into a bottom-left-origin box on a page.

        The image stream is embedded on first use; later draws of the same
        EmbeddedImage reference the existing PDF object.
        """
        page = self._page(page_number)
        rect = fitz.Rect(*box.to_top_left(page.rect.height))

        xref = self._image_xrefs.get(id(image))
        try:
            if xref:
                page.insert_image(rect, xref=xref, keep_proportion=False)
            else:
                self._image_xrefs[id(image)] = page.insert_image(
                    rect, stream=image.data, keep_proportion=False
                )
        except (RuntimeError, ValueError) as e:
            raise UnsupportedFormatError(f"Could not embed signature image: {e}")

    def serialize(self) -> bytes:
        """
        Write the document to bytes.

        Raises:
            SerializationError: If PyMuPDF cannot write the document
        """
        try:
            return self._doc.tobytes(garbage=4, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize PDF: {e}")

    def close(self) -> None:
        if not self._doc.is_closed:
            self._doc.close()

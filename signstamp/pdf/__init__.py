# PDF module
from signstamp.pdf.engine import PdfDocument
from signstamp.pdf.errors import (
    SigningError,
    CorruptDocumentError,
    DegenerateGeometryError,
    DocumentNotFoundError,
    PageNotFoundError,
    PersistenceError,
    SerializationError,
    UnsupportedFormatError,
)
from signstamp.pdf.geometry import FieldPlacement, PlacementBox, resolve_placement
from signstamp.pdf.image import EmbeddedImage, decode_image, parse_data_url
from signstamp.pdf.stamp import place_fields

__all__ = [
    "PdfDocument",
    "SigningError",
    "CorruptDocumentError",
    "DegenerateGeometryError",
    "DocumentNotFoundError",
    "PageNotFoundError",
    "PersistenceError",
    "SerializationError",
    "UnsupportedFormatError",
    "FieldPlacement",
    "PlacementBox",
    "resolve_placement",
    "EmbeddedImage",
    "decode_image",
    "parse_data_url",
    "place_fields",
]

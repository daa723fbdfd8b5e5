"""
Signature image decoding.

Signature images arrive as ``data:<mime>;base64,<payload>`` URLs. The bytes
are probed by trying each registered decoder in order (PNG first, then
JPEG); the first one that fully decodes the image wins. The declared MIME
type is only a hint that moves its decoder to the front.
"""
import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from PIL import Image

from signstamp.pdf.errors import UnsupportedFormatError
from signstamp.pdf.geometry import aspect_ratio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddedImage:
    """Decoded signature image, ready to be drawn into any number of fields."""
    pixel_width: int
    pixel_height: int
    data: bytes    # Original encoded bytes, embedded into the PDF as-is
    format: str    # "PNG" or "JPEG"

    @property
    def aspect_ratio(self) -> float:
        return aspect_ratio(self.pixel_width, self.pixel_height)


# A decoder takes raw bytes and returns (width, height) or raises.
Decoder = Callable[[bytes], Tuple[int, int]]


def _pillow_decoder(pil_format: str) -> Decoder:
    def decode(data: bytes) -> Tuple[int, int]:
        with Image.open(io.BytesIO(data), formats=[pil_format]) as img:
            # open() only reads the header; load() decodes the pixel data
            img.load()
            return img.size
    return decode


# Ordered: (format name, accepted MIME types, decoder)
_DECODERS: List[Tuple[str, Tuple[str, ...], Decoder]] = [
    ("PNG", ("image/png",), _pillow_decoder("PNG")),
    ("JPEG", ("image/jpeg", "image/jpg", "image/pjpeg"), _pillow_decoder("JPEG")),
]


def register_decoder(name: str, mime_types: Tuple[str, ...], decoder: Decoder) -> None:
    """Append a decoder strategy; it is tried after the built-in ones."""
    _DECODERS.append((name, tuple(m.lower() for m in mime_types), decoder))


def _ordered_decoders(mime_hint: Optional[str]) -> List[Tuple[str, Tuple[str, ...], Decoder]]:
    if not mime_hint:
        return list(_DECODERS)
    hint = mime_hint.lower().strip()
    hinted = [d for d in _DECODERS if hint in d[1]]
    rest = [d for d in _DECODERS if hint not in d[1]]
    return hinted + rest


def decode_image(data: bytes, mime_hint: Optional[str] = None) -> EmbeddedImage:
    """
    Decode signature image bytes.

    Args:
        data: Encoded image bytes
        mime_hint: Declared MIME type, if any

    Returns:
        EmbeddedImage with native pixel dimensions

    Raises:
        UnsupportedFormatError: If no decoder accepts the bytes
    """
    if not data:
        raise UnsupportedFormatError("Signature image is empty")

    attempted = []
    for name, _, decoder in _ordered_decoders(mime_hint):
        try:
            width, height = decoder(data)
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            logger.debug(f"Signature image is not {name}: {e}")
            attempted.append(name)
            continue
        logger.debug(f"Decoded signature image as {name} ({width}x{height} px)")
        return EmbeddedImage(pixel_width=width, pixel_height=height, data=data, format=name)

    raise UnsupportedFormatError(
        f"Unsupported signature image format (tried {', '.join(attempted)})"
    )


def parse_data_url(value: str) -> Tuple[Optional[str], bytes]:
    """
    Split a ``data:<mime>;base64,<payload>`` URL into (mime, bytes).

    A bare base64 payload without the ``data:`` prefix is accepted with no
    MIME hint.

    Raises:
        UnsupportedFormatError: If the payload is not valid base64
    """
    mime = None
    payload = value.strip()
    if payload.startswith("data:"):
        header, sep, payload = payload.partition(",")
        if not sep:
            raise UnsupportedFormatError("Malformed data URL: missing ',' separator")
        mime = header[len("data:"):].split(";", 1)[0].strip().lower() or None

    # Line-wrapped base64 is common from non-browser clients
    payload = "".join(payload.split())
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UnsupportedFormatError(f"Signature image is not valid base64: {e}")

    return mime, data

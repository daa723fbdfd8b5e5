"""
Tests for signature image decoding and data URL parsing.
"""
import base64
import io

import pytest
from PIL import Image

from signstamp.pdf import image as image_module
from signstamp.pdf.errors import UnsupportedFormatError
from signstamp.pdf.image import decode_image, parse_data_url, register_decoder


class TestDecodeImage:
    """Tests for decode_image()."""

    def test_png_decoded(self, png_bytes):
        image = decode_image(png_bytes)
        assert image.format == "PNG"
        assert (image.pixel_width, image.pixel_height) == (300, 100)
        assert image.aspect_ratio == pytest.approx(3.0)
        assert image.data == png_bytes

    def test_jpeg_decoded_by_fallback(self, jpeg_bytes):
        """JPEG is found after the PNG attempt fails."""
        image = decode_image(jpeg_bytes)
        assert image.format == "JPEG"
        assert (image.pixel_width, image.pixel_height) == (120, 240)
        assert image.aspect_ratio == pytest.approx(0.5)

    def test_wrong_mime_hint_still_falls_back(self, png_bytes):
        """A misleading hint changes the order, not the outcome."""
        image = decode_image(png_bytes, mime_hint="image/jpeg")
        assert image.format == "PNG"

    def test_unknown_mime_hint_ignored(self, jpeg_bytes):
        image = decode_image(jpeg_bytes, mime_hint="application/octet-stream")
        assert image.format == "JPEG"

    def test_gif_rejected(self):
        buf = io.BytesIO()
        Image.new("RGB", (10, 10)).save(buf, format="GIF")
        with pytest.raises(UnsupportedFormatError):
            decode_image(buf.getvalue(), mime_hint="image/gif")

    def test_garbage_rejected(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            decode_image(b"definitely not an image")
        assert "PNG" in exc_info.value.message
        assert "JPEG" in exc_info.value.message

    def test_empty_rejected(self):
        with pytest.raises(UnsupportedFormatError):
            decode_image(b"")

    def test_truncated_png_rejected(self, png_bytes):
        """PNG header alone is not enough; pixel data must decode."""
        with pytest.raises(UnsupportedFormatError):
            decode_image(png_bytes[:45])

    def test_error_code(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            decode_image(b"xyz")
        assert exc_info.value.code == "UNSUPPORTED_FORMAT"


class TestRegisterDecoder:
    """Extra formats can be added without touching callers."""

    def test_registered_decoder_used(self, monkeypatch):
        monkeypatch.setattr(image_module, "_DECODERS", list(image_module._DECODERS))

        def fake_decoder(data: bytes):
            if not data.startswith(b"FAKE"):
                raise ValueError("not fake")
            return 40, 20

        register_decoder("FAKE", ("image/x-fake",), fake_decoder)
        image = decode_image(b"FAKE-IMAGE")

        assert image.format == "FAKE"
        assert image.aspect_ratio == pytest.approx(2.0)


class TestParseDataUrl:
    """Tests for parse_data_url()."""

    def test_png_data_url(self, png_bytes):
        url = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        mime, data = parse_data_url(url)
        assert mime == "image/png"
        assert data == png_bytes

    def test_mime_lowercased(self, jpeg_bytes):
        url = "data:IMAGE/JPEG;base64," + base64.b64encode(jpeg_bytes).decode()
        mime, _ = parse_data_url(url)
        assert mime == "image/jpeg"

    def test_bare_base64_has_no_hint(self, png_bytes):
        mime, data = parse_data_url(base64.b64encode(png_bytes).decode())
        assert mime is None
        assert data == png_bytes

    def test_line_wrapped_base64_accepted(self, png_bytes):
        encoded = base64.encodebytes(png_bytes).decode()  # 76-char lines
        mime, data = parse_data_url("data:image/png;base64," + encoded)
        assert data == png_bytes

    def test_invalid_base64_rejected(self):
        with pytest.raises(UnsupportedFormatError):
            parse_data_url("data:image/png;base64,not-valid-base64!")

    def test_missing_separator_rejected(self):
        with pytest.raises(UnsupportedFormatError):
            parse_data_url("data:image/png;base64")

"""
Tests for log formatting and request correlation.
"""
import json
import logging

from signstamp.utils.logging import (
    CloudLoggingFormatter,
    DevelopmentFormatter,
    clear_context,
    fingerprint,
    get_request_id,
    set_context,
    set_request_id,
)


def _record(message: str = "Signed document doc-456") -> logging.LogRecord:
    return logging.LogRecord(
        name="signstamp.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestFingerprint:
    def test_none(self):
        assert fingerprint(None) == "none"
        assert fingerprint(b"", "img_") == "img_none"

    def test_bytes_and_str_agree(self):
        assert fingerprint("abc") == fingerprint(b"abc")

    def test_prefix_and_length(self):
        fp = fingerprint(b"\x89PNG", "img_")
        assert fp.startswith("img_")
        assert len(fp) == len("img_") + 8


class TestFormatters:
    def teardown_method(self):
        clear_context()

    def test_cloud_formatter_json(self):
        set_request_id("req-123")
        set_context(document_id="doc-456")

        entry = json.loads(CloudLoggingFormatter().format(_record()))

        assert entry["severity"] == "INFO"
        assert entry["message"] == "Signed document doc-456"
        assert entry["request_id"] == "req-123"
        assert entry["document_id"] == "doc-456"
        assert entry["timestamp"].endswith("Z")

    def test_cloud_formatter_without_context(self):
        entry = json.loads(CloudLoggingFormatter().format(_record()))
        assert "request_id" not in entry
        assert "document_id" not in entry

    def test_development_formatter(self):
        set_request_id("req-12345678-abcd")
        line = DevelopmentFormatter().format(_record("hello"))
        assert line == "[INFO] [req-1234] hello"

    def test_clear_context(self):
        set_request_id("req-123")
        clear_context()
        assert get_request_id() is None

"""
Pytest configuration and fixtures.
"""
import base64
import io
import os
import sys
import tempfile

import pytest
import fitz  # PyMuPDF
from PIL import Image

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from signstamp.services.signing_processor import SigningOrchestrator
from signstamp.storage import LocalDocumentStore, LocalOutputStore
from signstamp.supabase_client import InMemoryAuditStore

# US Letter in points
LETTER_WIDTH = 612.0
LETTER_HEIGHT = 792.0


def make_png(width: int = 300, height: int = 100) -> bytes:
    img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    # A dark stroke so the image is not blank
    for x in range(width):
        img.putpixel((x, height // 2), (10, 10, 80, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_jpeg(width: int = 120, height: int = 240) -> bytes:
    img = Image.new("RGB", (width, height), (255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


def make_pdf(pages: int = 2, width: float = LETTER_WIDTH, height: float = LETTER_HEIGHT) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((50, 100), f"Test Document page {i + 1}", fontsize=18)
    data = doc.tobytes()
    doc.close()
    return data


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def png_bytes():
    """300x100 PNG (aspect 3.0)."""
    return make_png(300, 100)


@pytest.fixture
def jpeg_bytes():
    """120x240 JPEG (aspect 0.5)."""
    return make_jpeg(120, 240)


@pytest.fixture
def png_data_url(png_bytes):
    return to_data_url(png_bytes, "image/png")


@pytest.fixture
def sample_pdf_bytes():
    """Two-page US Letter PDF."""
    return make_pdf(pages=2)


@pytest.fixture
def documents_dir(temp_dir, sample_pdf_bytes):
    path = os.path.join(temp_dir, "pdfs")
    os.makedirs(path)
    with open(os.path.join(path, "doc-456.pdf"), "wb") as f:
        f.write(sample_pdf_bytes)
    return path


@pytest.fixture
def signed_dir(temp_dir):
    return os.path.join(temp_dir, "signed")


@pytest.fixture
def document_store(documents_dir):
    return LocalDocumentStore(documents_dir)


@pytest.fixture
def output_store(signed_dir):
    return LocalOutputStore(signed_dir, base_url="/signed-files")


@pytest.fixture
def audit_store():
    """Connected in-memory audit store."""
    store = InMemoryAuditStore()
    store.connected = True
    return store


@pytest.fixture
def orchestrator(document_store, output_store, audit_store):
    return SigningOrchestrator(
        document_store=document_store,
        output_store=output_store,
        audit_store=audit_store,
    )


def list_files(root: str):
    """All files under root, relative paths."""
    found = []
    for dirpath, _, filenames in os.walk(root):
        for name in filenames:
            found.append(os.path.relpath(os.path.join(dirpath, name), root))
    return found

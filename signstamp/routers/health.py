"""
Health check endpoints for diagnosing service dependencies.
"""
import fitz  # PyMuPDF
import PIL
from fastapi import APIRouter, Request

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("")
async def health_check():
    """Liveness probe for Cloud Run."""
    return {"status": "healthy"}


@router.get("/dependencies")
async def health_check_dependencies(request: Request):
    """
    Report library versions and whether the audit store is connected.
    A disconnected audit store means every signing request will fail.
    """
    audit_store = getattr(request.app.state, "audit_store", None)
    audit_connected = bool(audit_store is not None and audit_store.connected)

    return {
        "status": "healthy" if audit_connected else "degraded",
        "audit_store_connected": audit_connected,
        "storage_backend": getattr(request.app.state, "storage_backend", None),
        "pymupdf_version": fitz.VersionBind,
        "pillow_version": PIL.__version__,
    }

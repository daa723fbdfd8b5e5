"""
Signature Stamping Service - Main FastAPI Application
Stamps signature images into stored PDFs and keeps a hash audit trail.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from signstamp.config import get_settings, get_cors_origins
from signstamp.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    signing_error_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from signstamp.pdf.errors import SigningError
from signstamp.routers import audit, health, sign
from signstamp.services.signing_processor import SigningOrchestrator
from signstamp.storage import create_stores
from signstamp.supabase_client import create_audit_store
from signstamp.utils.logging import setup_logging, RequestIdMiddleware, get_logger

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Collaborators are created once here and shared by all requests. The audit
    store connects before the first request; if it cannot, the service still
    starts and every signing request fails at its persistence step.
    """
    settings = get_settings()
    setup_logging(
        environment=settings.environment,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )
    logger.info(f"Starting Signature Stamping Service v{VERSION} ({settings.environment})")

    document_store, output_store = create_stores(settings)
    audit_store = create_audit_store(settings)
    try:
        await audit_store.connect()
    except Exception as e:
        logger.error(f"CRITICAL: audit store unavailable at startup: {e}")

    app.state.storage_backend = settings.storage_backend
    app.state.audit_store = audit_store
    app.state.orchestrator = SigningOrchestrator(
        document_store=document_store,
        output_store=output_store,
        audit_store=audit_store,
    )

    yield

    await audit_store.close()
    logger.info("Shutting down Signature Stamping Service")


app = FastAPI(
    title="Signature Stamping Service",
    description="""Stamps a signature image into regions of a stored PDF.

Each successful request produces a new signed PDF and an append-only audit
record linking the SHA-256 digest of the original to that of the signed file.
""",
    version=VERSION,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "signing", "description": "Signature stamping"},
        {"name": "audit", "description": "Audit trail lookup"},
        {"name": "health", "description": "Health check endpoints"},
    ],
)

# Middleware
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(SigningError, signing_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers
app.include_router(health.router)
app.include_router(sign.router)
app.include_router(audit.router)

# Local backend serves signed outputs at the locator it hands out
_settings = get_settings()
if _settings.storage_backend == "local" and _settings.signed_files_base_url.startswith("/"):
    app.mount(
        _settings.signed_files_base_url,
        StaticFiles(directory=_settings.signed_dir, check_dir=False),
        name="signed-files",
    )


# Run with uvicorn
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "signstamp.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8000)),
        reload=True,
    )

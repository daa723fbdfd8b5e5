"""
Signing API router.
POST /sign-pdf stamps a signature image into a stored PDF and returns the
signed file's URL with before/after SHA-256 digests.
"""
from fastapi import APIRouter, Depends, Request

from signstamp.config import get_settings, Settings
from signstamp.exceptions import ValidationException
from signstamp.models import ErrorResponse, SignPdfRequest, SignPdfResponse
from signstamp.services.signing_processor import SigningOrchestrator
from signstamp.utils.logging import set_context, get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["signing"])


def get_orchestrator(request: Request) -> SigningOrchestrator:
    """Orchestrator built in the app lifespan."""
    return request.app.state.orchestrator


@router.post(
    "/sign-pdf",
    response_model=SignPdfResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Document not found"},
        415: {"model": ErrorResponse, "description": "Unsupported signature image"},
        422: {"model": ErrorResponse, "description": "Invalid document, page or field"},
        502: {"model": ErrorResponse, "description": "Signed output could not be stored"},
    },
)
@router.post("/v1/sign-pdf", response_model=SignPdfResponse, include_in_schema=False)
async def sign_pdf(
    body: SignPdfRequest,
    settings: Settings = Depends(get_settings),
    orchestrator: SigningOrchestrator = Depends(get_orchestrator),
):
    """
    Stamp the signature into every requested field.

    Either the whole operation succeeds (signed, hashed, stored, audited) or
    a single error is returned.
    """
    set_context(document_id=body.document_id)

    # base64 inflates by 4/3; the data URL header adds a few bytes
    if len(body.signature_image) > settings.max_signature_bytes * 4 // 3 + 128:
        raise ValidationException(
            f"Signature image exceeds {settings.max_signature_bytes} bytes"
        )

    logger.info(f"Signing request: document={body.document_id}, fields={len(body.fields)}")

    result = await orchestrator.sign_stored_document(
        document_id=body.document_id,
        signature_image=body.signature_image,
        fields=body.placements(),
    )

    return SignPdfResponse(
        ok=result.ok,
        url=result.url,
        original_hash=result.original_hash,
        signed_hash=result.signed_hash,
    )

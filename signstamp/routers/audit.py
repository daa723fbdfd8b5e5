"""
Audit trail lookup.
Anyone holding a signed PDF can hash it and check it against the trail.
"""
import re

from fastapi import APIRouter, Depends, Path, Request

from signstamp.exceptions import NotFoundError, ValidationException
from signstamp.models import AuditLookupResponse
from signstamp.supabase_client import AuditStore
from signstamp.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/audit", tags=["audit"])

SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


def get_audit_store(request: Request) -> AuditStore:
    return request.app.state.audit_store


@router.get("/{signed_hash}", response_model=AuditLookupResponse)
async def lookup_signed_hash(
    signed_hash: str = Path(..., description="SHA-256 hex digest of a signed PDF"),
    audit_store: AuditStore = Depends(get_audit_store),
):
    """
    Return every audit record whose signed_hash matches.

    404 means no signing operation produced a file with this digest.
    """
    signed_hash = signed_hash.strip().lower()
    if not SHA256_HEX.match(signed_hash):
        raise ValidationException("signed_hash must be a 64-character SHA-256 hex digest")

    records = await audit_store.find_by_signed_hash(signed_hash)
    if not records:
        raise NotFoundError("Audit record", signed_hash)

    logger.info(f"Audit lookup matched {len(records)} record(s) for {signed_hash[:12]}...")
    return AuditLookupResponse(signed_hash=signed_hash, records=records)

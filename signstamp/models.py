import re
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from signstamp.pdf.geometry import FieldPlacement

# Float slack when checking that a field stays on its page (e.g. 0.7 + 0.3)
FIELD_BOUNDS_TOLERANCE = 1e-6

# Document IDs end up in storage paths
DOCUMENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


class BaseRequest(BaseModel):
    """Base class for all request models - ignores extra fields."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# Request Models
class SignFieldRequest(BaseRequest):
    """
    Signature field, as fractions of the page.
    top_pct is measured from the TOP edge of the page.
    """
    page: int = Field(..., ge=1, description="Page number (1-indexed)")
    left_pct: float = Field(..., ge=0, le=1, alias="leftPct")
    top_pct: float = Field(..., ge=0, le=1, alias="topPct")
    width_pct: float = Field(..., gt=0, le=1, alias="widthPct")
    height_pct: float = Field(..., gt=0, le=1, alias="heightPct")

    @model_validator(mode="after")
    def validate_within_page(self) -> "SignFieldRequest":
        if self.left_pct + self.width_pct > 1 + FIELD_BOUNDS_TOLERANCE:
            raise ValueError(
                f"Field exceeds the right edge of the page: "
                f"leftPct({self.left_pct}) + widthPct({self.width_pct}) > 1"
            )
        if self.top_pct + self.height_pct > 1 + FIELD_BOUNDS_TOLERANCE:
            raise ValueError(
                f"Field exceeds the bottom edge of the page: "
                f"topPct({self.top_pct}) + heightPct({self.height_pct}) > 1"
            )
        return self

    def to_placement(self) -> FieldPlacement:
        return FieldPlacement(
            page=self.page,
            left_pct=self.left_pct,
            top_pct=self.top_pct,
            width_pct=self.width_pct,
            height_pct=self.height_pct,
        )


class SignPdfRequest(BaseRequest):
    """
    POST /sign-pdf body.
    Also accepts the legacy names pdfId / signature.
    """
    document_id: str = Field(
        ...,
        validation_alias=AliasChoices("documentId", "pdfId", "document_id"),
    )
    signature_image: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("signatureImage", "signature", "signature_image"),
        description='Data URL: "data:<mime>;base64,<payload>"',
    )
    fields: List[SignFieldRequest] = Field(default_factory=list, max_length=200)

    @field_validator("document_id")
    @classmethod
    def validate_document_id(cls, v: str) -> str:
        v = v.strip()
        if ".." in v or not DOCUMENT_ID_PATTERN.match(v):
            raise ValueError(f"Invalid document ID: '{v}'")
        return v

    def placements(self) -> List[FieldPlacement]:
        return [f.to_placement() for f in self.fields]


# Response Models
class SignPdfResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    url: str
    original_hash: str = Field(..., alias="originalHash")
    signed_hash: str = Field(..., alias="signedHash")


class AuditRecord(BaseModel):
    """
    One row of the append-only signing audit trail.
    Written once per successful signing, never updated.
    """
    document_id: str
    original_hash: str
    signed_hash: str
    signed_at: datetime
    fields: List[dict] = Field(default_factory=list)
    output_location: str
    request_id: Optional[str] = None

    def to_row(self) -> dict:
        """JSON-safe dict for the audit table."""
        return self.model_dump(mode="json")


class AuditLookupResponse(BaseModel):
    signed_hash: str
    records: List[AuditRecord]


# Error Response
class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    code: str
    request_id: Optional[str] = None

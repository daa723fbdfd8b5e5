"""
HTTP exceptions and error handlers.

Every error response has the same shape:
    {"ok": false, "error": <message>, "code": <CODE>, "request_id": <id>}
"""
import logging
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from signstamp.pdf.errors import SigningError
from signstamp.utils.logging import get_request_id

logger = logging.getLogger(__name__)


# SigningError.code -> HTTP status
SIGNING_ERROR_STATUS = {
    "NOT_FOUND": 404,
    "CORRUPT_DOCUMENT": 422,
    "UNSUPPORTED_FORMAT": 415,
    "PAGE_NOT_FOUND": 422,
    "DEGENERATE_GEOMETRY": 422,
    "SERIALIZATION_ERROR": 500,
    "PERSISTENCE_ERROR": 502,
}


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            status_code=404,
            code="NOT_FOUND",
            message=f"{resource} not found: {resource_id}",
        )


class ValidationException(AppException):
    """Validation error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            status_code=400,
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class SigningException(AppException):
    """Signing pipeline failure surfaced over HTTP."""

    def __init__(self, error: SigningError):
        super().__init__(
            status_code=SIGNING_ERROR_STATUS.get(error.code, 422),
            code=error.code,
            message=error.message,
        )


def build_error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    """Build standardized error response."""
    response = {
        "ok": False,
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }
    if details:
        response["details"] = details
    return response


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handle application exceptions."""
    logger.warning(f"AppException: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_response(exc.code, exc.message, exc.details),
    )


async def signing_error_handler(
    request: Request,
    exc: SigningError,
) -> JSONResponse:
    """Handle signing pipeline errors that reach the app unconverted."""
    return await app_exception_handler(request, SigningException(exc))


async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(f"HTTPException: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_response("HTTP_ERROR", str(exc.detail)),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle request body validation errors."""
    logger.warning(f"ValidationError: {exc.errors()}")

    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    message = "Request validation failed"
    if errors:
        message = f"{message}: {errors[0]['field']}: {errors[0]['message']}"

    return JSONResponse(
        status_code=422,
        content=build_error_response("VALIDATION_ERROR", message, {"errors": errors}),
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content=build_error_response("INTERNAL_ERROR", "An unexpected error occurred"),
    )

"""Error types and the handlers that render every failure the same way:

    {"error": {"code": "HTTP_404", "message": "Shipment not found", "details": {...}}}

The client SDK (app.sdk.client) reads `error.message` for the
user-facing text.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class CargoFlowException(Exception):
    """An error that carries its own status and machine-readable code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ResourceNotFoundError(CargoFlowException):
    """`ResourceNotFoundError("Shipment")` → 404 "Shipment not found"."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class PermissionDeniedError(CargoFlowException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: dict | None = None,
) -> JSONResponse:
    body = {"code": error_code, "message": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


# ── Handlers ─────────────────────────────────────────────────

async def cargoflow_exception_handler(request: Request, exc: CargoFlowException) -> JSONResponse:
    logger.warning(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.error_code, "path": request.url.path},
    )
    return create_error_response(exc.status_code, exc.message, exc.error_code)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
    elif exc.status_code in (403, 404):
        logger.info(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")

    return create_error_response(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten request validation errors into [{field, message, type}]."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.info(f"Validation failed on {request.url.path}: {len(errors)} error(s)")

    # A single problem is shown as-is so form clients get a readable message
    message = errors[0]["message"] if len(errors) == 1 else "Validation error"
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        message,
        "VALIDATION_ERROR",
        details={"errors": errors},
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """A constraint the routers did not pre-check (usually a concurrent duplicate)."""
    logger.error(f"Integrity error on {request.url.path}: {exc.orig}")
    if "unique" in str(exc.orig).lower():
        message, code = "A record with this value already exists", "DUPLICATE_RECORD"
    else:
        message, code = "Database constraint violation", "INTEGRITY_ERROR"
    return create_error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message, code)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Server error occurred",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    app.add_exception_handler(CargoFlowException, cargoflow_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

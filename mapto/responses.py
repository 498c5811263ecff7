"""
MapTo API Response Utilities
Standardized error format and exception handling
"""
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Dict
from datetime import datetime, timezone
import traceback

from .errors import BackendFailure, MaptoError, NotFound, ValidationError
from .logging_config import api_logger

# Domain errors that reach the handler without being converted by a route
DOMAIN_ERRORS = (
    (ValidationError, 400, "BAD_REQUEST"),
    (NotFound, 404, "NOT_FOUND"),
    (BackendFailure, 500, "INTERNAL_ERROR"),
)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# ERROR RESPONSES
# ============================================================

class ApiException(HTTPException):
    """Custom API exception with error codes"""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str = None,
        details: Dict = None,
    ):
        self.error_code = error_code or f"ERR_{status_code}"
        self.details = details
        super().__init__(status_code=status_code, detail=message)


def bad_request(message: str, code: str = "BAD_REQUEST", details: Dict = None):
    raise ApiException(400, message, code, details)

def not_found(resource: str = "Resource", id: str = None):
    message = f"{resource} not found" if not id else f"{resource} '{id}' not found"
    raise ApiException(404, message, "NOT_FOUND")

def server_error(message: str = "Internal server error"):
    raise ApiException(500, message, "INTERNAL_ERROR")


# ============================================================
# EXCEPTION HANDLER
# ============================================================

async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for API errors"""

    if isinstance(exc, RequestValidationError):
        api_logger.warning(
            "API Error: invalid request",
            status_code=400,
            error_code="BAD_REQUEST",
            path=request.url.path,
        )
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error": "Request body must be a JSON object",
                "error_code": "BAD_REQUEST",
                "details": jsonable_encoder(exc.errors()),
                "timestamp": _timestamp(),
            }
        )

    if isinstance(exc, ApiException):
        log = api_logger.error if exc.status_code >= 500 else api_logger.warning
        log(
            f"API Error: {exc.detail}",
            status_code=exc.status_code,
            error_code=exc.error_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "ok": False,
                "error": exc.detail,
                "error_code": exc.error_code,
                "details": exc.details,
                "timestamp": _timestamp(),
            }
        )

    if isinstance(exc, HTTPException):
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "ok": False,
                "error": exc.detail,
                "error_code": f"HTTP_{exc.status_code}",
                "timestamp": _timestamp(),
            }
        )

    if isinstance(exc, MaptoError):
        status_code, error_code = 500, "INTERNAL_ERROR"
        for error_type, status, code in DOMAIN_ERRORS:
            if isinstance(exc, error_type):
                status_code, error_code = status, code
                break
        log = api_logger.error if status_code >= 500 else api_logger.warning
        log(
            f"API Error: {exc}",
            status_code=status_code,
            error_code=error_code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "ok": False,
                "error": str(exc),
                "error_code": error_code,
                "timestamp": _timestamp(),
            }
        )

    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": "An unexpected error occurred",
            "error_code": "INTERNAL_ERROR",
            "timestamp": _timestamp(),
        }
    )

"""
Exception handlers translating catalog errors into HTTP responses.
"""

from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, render
from catalog.errors import CatalogError, ErrorKind, ErrorMessages, FieldViolation

logger = structlog.get_logger(__name__)

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.STALE_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_FAVORITED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_IN_FAVORITES: status.HTTP_400_BAD_REQUEST,
    ErrorKind.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.CONFIGURATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_CHALLENGE_KINDS = frozenset({ErrorKind.UNAUTHENTICATED, ErrorKind.TOKEN_INVALID, ErrorKind.STALE_TOKEN})


def error_response(
    status_code: int,
    message: str,
    violations: Optional[List[FieldViolation]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        status="fail" if status_code < 500 else "error",
        message=message,
        errors=violations or None,
    )
    return JSONResponse(status_code=status_code, content=render(body, keep=()), headers=headers)


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install the handlers on an application."""

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        status_code = STATUS_BY_KIND[exc.kind]
        if status_code >= 500:
            logger.error("Request failed", kind=exc.kind.value, error=exc.message, path=request.url.path)
        else:
            logger.info("Request rejected", kind=exc.kind.value, status_code=status_code, path=request.url.path)

        headers = {"WWW-Authenticate": "Bearer"} if exc.kind in _CHALLENGE_KINDS else None
        return error_response(status_code, exc.message, exc.violations, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        violations = [
            FieldViolation(
                field=".".join(str(part) for part in error["loc"]),
                message=error["msg"],
                code=error["type"],
            )
            for error in exc.errors()
        ]
        return error_response(status.HTTP_400_BAD_REQUEST, ErrorMessages.VALIDATION_ERROR, violations)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=True)
        message = str(exc) if debug else "Internal server error"
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


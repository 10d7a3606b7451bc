"""
FastAPI exception handlers: Octree errors, request validation and anything unhandled.
"""

from typing import Any, Dict, List, Tuple, Type

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from octree.core.logging import log_error
from octree.utils.exceptions import (
    CompilationError,
    ConflictResolutionError,
    DocumentNotFoundError,
    LimitExceededError,
    LLMServiceError,
    OctreeException,
    SessionNotFoundError,
    SuggestionNotFoundError,
    ValidationError as OctreeValidationError,
)

# First match wins; anything else is a 500.
STATUS_BY_EXCEPTION: List[Tuple[Tuple[Type[OctreeException], ...], int]] = [
    ((DocumentNotFoundError, SessionNotFoundError, SuggestionNotFoundError), status.HTTP_404_NOT_FOUND),
    ((OctreeValidationError,), status.HTTP_400_BAD_REQUEST),
    ((LimitExceededError,), status.HTTP_402_PAYMENT_REQUIRED),
    ((LLMServiceError, ConflictResolutionError, CompilationError), status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: OctreeException) -> int:
    for types, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, types):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def format_error_response(exc: OctreeException, status_code: int) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": type(exc).__name__, "detail": exc.message, "status_code": status_code}
    if exc.detail:
        body["extra"] = exc.detail
    return body


async def octree_exception_handler(request: Request, exc: OctreeException) -> JSONResponse:
    status_code = status_for(exc)
    level = "ERROR" if status_code >= 500 else "WARNING"
    logger.log(level, f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=format_error_response(exc, status_code))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", [])),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Rejected request to {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "ValidationError",
            "detail": "Request validation failed",
            "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
            "errors": errors,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(exc, path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": type(exc).__name__,
            "detail": str(exc),
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        },
    )

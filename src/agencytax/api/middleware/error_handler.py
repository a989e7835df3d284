"""Exception handlers that map failures to the catalog error envelope.

Every error response has the same shape::

    {"error_code", "message", "user_message", "suggestion", "retry_allowed"}

Pipeline errors take their texts from the catalog in core/errors.py; anything
unexpected is reported as SYS_001 without internal details.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from agencytax.config import settings
from agencytax.core.errors import get_error
from agencytax.core.exceptions import PipelineError

logger = logging.getLogger(__name__)


def _envelope(
    status_code: int,
    error_code: str,
    message: str,
    user_message: str,
    suggestion: str,
    retry_allowed: bool,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "user_message": user_message,
            "suggestion": suggestion,
            "retry_allowed": retry_allowed,
        },
    )


async def handle_pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
    """Render a pipeline exception using its catalog entry.

    Args:
        request: The incoming request
        exc: The pipeline exception

    Returns:
        JSONResponse with the exception's http_status
    """
    error_info = get_error(exc.error_code)

    # Details can carry provider payload fragments; only log them in debug.
    extra = {"error_code": exc.error_code, "path": request.url.path, "method": request.method}
    if settings.debug:
        extra["details"] = exc.details

    if exc.http_status >= 500:
        logger.error(f"Pipeline error: {exc.error_code}", extra=extra)
    else:
        logger.warning(f"Pipeline error: {exc.error_code}", extra=extra)

    return _envelope(
        exc.http_status,
        exc.error_code,
        error_info["message"],
        error_info["user_message"],
        error_info["suggestion"],
        error_info["retry_allowed"],
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request body/path validation failures as VAL_001."""
    errors = exc.errors()
    error_messages = []
    for error in errors:
        field = ".".join(str(x) for x in error.get("loc", []))
        error_messages.append(f"{field}: {error.get('msg', 'Invalid value')}")

    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        extra["errors"] = errors
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        "VAL_001",
        " | ".join(error_messages),
        "Invalid input data",
        "Please check your input and try again",
        True,
    )


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    # Do not log str(exc): it includes SQL and bound parameters.
    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        logger.exception(f"Database integrity error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Database integrity error on {request.url.path}", extra=extra)

    error_msg = str(exc.orig).lower() if exc.orig is not None else ""
    if "unique" in error_msg or "duplicate" in error_msg:
        return _envelope(
            status.HTTP_409_CONFLICT,
            "DB_002",
            "Resource already exists",
            "This record already exists",
            "Please check if the record was already created",
            False,
        )

    error_info = get_error("DB_001")
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "DB_001",
        error_info["message"],
        error_info["user_message"],
        error_info["suggestion"],
        error_info["retry_allowed"],
    )


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    """Last resort handler; never exposes internal details."""
    extra = {"error_type": type(exc).__name__, "path": request.url.path, "method": request.method}
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "SYS_001",
        "Internal server error",
        "An unexpected error occurred",
        "Please try again later or contact support",
        True,
    )

"""Shared error handling for API endpoints.

Every failure leaves the API as a uniform ``{"error": <message>}`` body.
Domain errors carry their own status code; anything unexpected becomes a
500 without a partial result.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from transit_insights.errors import TransitInsightsError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the uniform error body.

    Args:
        status_code: HTTP status of the response.
        message: Human readable description of the failure.

    Returns:
        A JSONResponse with an ``error`` key.
    """
    return JSONResponse(status_code=status_code, content={"error": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"Invalid {location}: {message}" if location else message


async def handle_domain_error(request: Request, exc: TransitInsightsError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%d): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return error_response(int(exc.status_code), exc.message)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(
        HTTPStatus.UNPROCESSABLE_ENTITY, _describe_validation_error(exc)
    )


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


def install_exception_handlers(app: FastAPI) -> None:
    """Register the uniform error handlers on ``app``."""
    app.add_exception_handler(TransitInsightsError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected)

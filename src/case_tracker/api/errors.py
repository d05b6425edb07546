"""Exception handlers producing the {success, message} envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from case_tracker.config import settings
from case_tracker.core.errors import CaseTrackerError, PartialFailureError
from case_tracker.models import ErrorResponse

logger = logging.getLogger(__name__)


def _respond(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.to_content())


async def case_tracker_error_handler(request: Request, exc: CaseTrackerError) -> JSONResponse:
    body = ErrorResponse(message=exc.message)

    if isinstance(exc, PartialFailureError):
        body.partial_state = exc.state.value
        logger.error(
            f"{request.method} {request.url.path} left partial state "
            f"{exc.state.value} ({exc.resource_id}): {exc.message}"
        )
    elif exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")

    if settings.is_development and exc.__cause__ is not None:
        body.error = str(exc.__cause__)

    return _respond(exc.status_code, body)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _respond(exc.status_code, ErrorResponse(message=str(exc.detail)))


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return _respond(
        status.HTTP_400_BAD_REQUEST,
        ErrorResponse(message="Validation Error", errors=errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    body = ErrorResponse(message="Internal server error")
    if settings.is_development:
        body.error = str(exc)
    return _respond(status.HTTP_500_INTERNAL_SERVER_ERROR, body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CaseTrackerError, case_tracker_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

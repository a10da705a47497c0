"""Domain exceptions and their mapping to HTTP responses."""

from typing import Optional

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from nexus_api.monitoring.logger import log_response_info

__all__ = [
    "NexusError",
    "NotFoundError",
    "InvalidInputError",
    "InvalidStateError",
    "ConflictError",
    "PermissionDeniedError",
    "ExternalServiceError",
    "handle_broad_exceptions",
    "handle_nexus_errors",
    "handle_pydantic_validation_errors",
]


class NexusError(Exception):
    """Base class for errors raised by the service layer."""

    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(NexusError):
    """A referenced project, proposal or notification does not exist."""

    http_status = status.HTTP_404_NOT_FOUND


class InvalidInputError(NexusError):
    """The request is well-formed but violates a business rule on its values."""

    http_status = status.HTTP_400_BAD_REQUEST


class InvalidStateError(NexusError):
    """The action is not permitted given the entity's current status."""

    http_status = status.HTTP_409_CONFLICT


class ConflictError(NexusError):
    """The action would violate a uniqueness rule (e.g. a duplicate proposal)."""

    http_status = status.HTTP_409_CONFLICT


class PermissionDeniedError(NexusError):
    """The caller is authenticated but not allowed to perform the action."""

    http_status = status.HTTP_403_FORBIDDEN


class ExternalServiceError(NexusError):
    """An external collaborator (AI endpoint, broker) failed or timed out."""

    http_status = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, service: Optional[str] = None):
        super().__init__(message)
        self.service = service


# Statuses collapsed to 400 when legacy_error_status is enabled
LEGACY_COLLAPSED = (NotFoundError, InvalidStateError, ConflictError)


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.error(
            f"Unhandled exception: {type(err).__name__}: {str(err)}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            exc_info=True,
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


async def handle_nexus_errors(request: Request, exc: NexusError) -> JSONResponse:
    """
    Convert service-layer errors to HTTP responses.

    Maps domain exceptions to HTTP status codes:
    - NotFoundError -> 404 Not Found
    - InvalidInputError -> 400 Bad Request
    - InvalidStateError -> 409 Conflict
    - ConflictError -> 409 Conflict
    - PermissionDeniedError -> 403 Forbidden
    - ExternalServiceError -> 502 Bad Gateway

    With ``legacy_error_status`` enabled, NotFound/InvalidState/Conflict are all returned as
    400 Bad Request, matching the responses of the previous API generation.
    """
    settings = getattr(request.app.state, "settings", None)
    http_status = exc.http_status
    if settings is not None and settings.legacy_error_status and isinstance(exc, LEGACY_COLLAPSED):
        http_status = status.HTTP_400_BAD_REQUEST

    error_type = type(exc).__name__
    error_response = {"detail": exc.message, "error_type": error_type}

    log = logger.error if http_status >= 500 else logger.warning
    log(
        f"{error_type}: {exc.message}",
        http_status=http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=error_type,
    )

    response = JSONResponse(status_code=http_status, content=error_response)
    log_response_info(response)
    return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(
    request: Request, exc: pydantic.ValidationError | RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors (request bodies and models built inside handlers)."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "loc": list(error.get("loc", [])),
                "msg": error["msg"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        validation_errors=error_response["detail"],
    )

    response = JSONResponse(
        status_code=422,
        content=error_response,
    )
    log_response_info(response)

    return response

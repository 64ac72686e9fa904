"""
Error taxonomy
Domain exceptions and their translation to HTTP responses
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FinanceTrackerError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong!"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FinanceTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Please provide all required fields"


class DuplicateEmail(FinanceTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User with this email already exists"


class InvalidRange(FinanceTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid date range"


class InvalidAmount(FinanceTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Please provide a valid contribution amount"


class InvalidCredentials(FinanceTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class NotAuthenticated(FinanceTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class NotFound(FinanceTrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class FederatedLoginFailed(FinanceTrackerError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Federated sign-in failed"


class UpstreamFailure(FinanceTrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage is temporarily unavailable"


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        # drop the leading "body"/"query" segment
        location = [str(item) for item in error.get("loc", ())[1:]]
        field = ".".join(location) or "request"
        parts.append(f"{field}: {error.get('msg')}")
    return ", ".join(parts)


async def finance_tracker_error_handler(request: Request, exc: FinanceTrackerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    message = _format_validation_errors(exc)
    logger.info(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": FinanceTrackerError.default_message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FinanceTrackerError, finance_tracker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

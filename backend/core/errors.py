"""API error taxonomy and the FastAPI handlers that render it as an envelope."""

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.config import Settings
from backend.core.security import TokenConfigurationError
from backend.core.session import clear_session_cookie, session_marked_invalid

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class ErrorCode(str, Enum):
    """Machine-readable error kinds returned in the ``code`` field."""

    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(Exception):
    """Base exception for expected, client-facing failures."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        code: ErrorCode = ErrorCode.INVALID_REQUEST,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class InvalidInputError(APIError):
    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCode.VALIDATION_ERROR)


class ConflictError(APIError):
    """Input collides with existing data (e.g. an email already in use)."""

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, status.HTTP_409_CONFLICT, ErrorCode.VALIDATION_ERROR)


class UnauthorizedError(APIError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED)


class InvalidCredentialsError(UnauthorizedError):
    """Login failure. The message never reveals which credential was wrong."""

    def __init__(self):
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class ForbiddenError(APIError):
    def __init__(self, message: str = "Access forbidden"):
        super().__init__(message, status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN)


class NotFoundError(APIError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND)


class DatabaseError(APIError):
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR)


class RateLimitError(APIError):
    def __init__(self, message: str = "Too many requests, please try again later"):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS, ErrorCode.INVALID_REQUEST)


_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorCode.VALIDATION_ERROR,
}


def error_response(message: str, status_code: int, code: ErrorCode) -> JSONResponse:
    """Render a failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code.value},
    )


def _describe_validation_errors(errors: list[dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path"))
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid input: " + "; ".join(parts) if parts else "Invalid input"


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Register handlers converting every failure into the response envelope."""

    def _internal_message(exc: Exception, default: str) -> str:
        return str(exc) if settings.debug and str(exc) else default

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        return error_response(exc.message, exc.status_code, exc.code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(
            _describe_validation_errors(list(exc.errors())),
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            ErrorCode.VALIDATION_ERROR,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, ErrorCode.INVALID_REQUEST)
        return error_response(str(exc.detail), exc.status_code, code)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception(f"Database error while handling {request.method} {request.url.path}")
        return error_response(
            _internal_message(exc, "Database operation failed"),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.DATABASE_ERROR,
        )

    @app.exception_handler(TokenConfigurationError)
    async def token_configuration_handler(request: Request, exc: TokenConfigurationError) -> JSONResponse:
        logger.error(f"Cannot issue session token for {request.url.path}: {exc}")
        return error_response(
            _internal_message(exc, "Internal server error"),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error while handling {request.method} {request.url.path}")
        response = error_response(
            _internal_message(exc, "Internal server error"),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
        )
        # Runs outside the cookie-clearing middleware, so clear a rejected session here
        if session_marked_invalid(request):
            clear_session_cookie(response, settings)
        return response

"""
API error taxonomy and the FastAPI handlers that render it.

Every error a route raises on purpose is an ``APIError`` carrying an HTTP
status and a machine-readable code. The handlers registered by
``register_exception_handlers`` turn them into a JSON body of the shape
``{"error": <message>, "code": <code>, "status": <status>}``.
"""
import logging
import re
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

EMAIL_REGX = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
MIN_PASSWORD_LENGTH = 6


class APIError(Exception):
    def __init__(self, message: str, status: int = 500, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "status": self.status}


class ValidationError(APIError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")
        self.field = field


class AuthenticationError(APIError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, "AUTHENTICATION_ERROR")


class AuthorizationError(APIError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status.HTTP_403_FORBIDDEN, "AUTHORIZATION_ERROR")


class NotFoundError(APIError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND, "NOT_FOUND_ERROR")


class ConflictError(APIError):
    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message, status.HTTP_409_CONFLICT, "CONFLICT_ERROR")


class DatabaseError(APIError):
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR")


class ExternalServiceError(APIError):
    def __init__(self, message: str = "External service error"):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, "EXTERNAL_SERVICE_ERROR")


# --- Validation helpers ---

def validate_required(value: Any, field_name: str) -> None:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        raise ValidationError(f"{field_name} is required", field=field_name.lower())


def validate_email(email: str) -> None:
    if not re.fullmatch(EMAIL_REGX, email):
        raise ValidationError("Invalid email format", field="email")


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            field="password",
        )


# --- Handlers ---

async def api_error_handler(request: Request, exc: APIError):
    if exc.status >= 500:
        logger.error(f"[API Error] {request.method} {request.url.path}: {exc.code} {exc.message}")
    else:
        logger.info(f"[API Error] {request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message, "code": "VALIDATION_ERROR", "status": status.HTTP_400_BAD_REQUEST},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[API Error] Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected error occurred", "code": "INTERNAL_ERROR", "status": 500},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

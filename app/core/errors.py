"""
Typed application errors and their translation to HTTP responses.

Services raise one of the AppError subclasses below; the handlers registered by
register_exception_handlers turn them into the `{"error": {...}}` body exactly once,
at the boundary. Callers never inspect error messages to decide a status.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from app.config import settings

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class AppError(Exception):
    status_code = 500
    default_code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None, details: Any = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


class ValidationFailed(AppError):
    status_code = 400
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class BusinessRuleViolation(AppError):
    """A well-formed request that breaks a lifecycle rule (last admin, name confirmation, ...)."""
    status_code = 400
    default_code = "BUSINESS_RULE_VIOLATION"
    default_message = "Operation not allowed"


class Unauthorized(AppError):
    status_code = 401
    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFound(AppError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_code = "CONFLICT"
    default_message = "Resource conflict"


class RateLimited(AppError):
    status_code = 429
    default_code = "RATE_LIMITED"
    default_message = "Too many requests"


class InternalError(AppError):
    pass


def error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    body = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    message = details[0]["msg"] if details else "Invalid request"
    return error_response(400, "VALIDATION_ERROR", message, details)


async def postgrest_error_handler(request: Request, exc: APIError):
    if exc.code == UNIQUE_VIOLATION:
        return error_response(409, "CONFLICT", "Resource already exists")
    logger.error(f"Database error on {request.method} {request.url.path}: {exc.code} {exc.message}")
    return error_response(500, "INTERNAL_ERROR", "Database error")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return error_response(500, "INTERNAL_ERROR", "Internal server error")
    return error_response(500, "INTERNAL_ERROR", str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(APIError, postgrest_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

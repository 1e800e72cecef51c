"""Domain errors and their HTTP mapping."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from crm.api.health import ERRORS

logger = structlog.get_logger()


class CRMError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class AuthenticationRequired(CRMError):
    status_code = 401
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationFailed(CRMError):
    status_code = 400
    code = "validation_error"

    def __init__(self, details: list[dict], message: str = "Validation failed"):
        super().__init__(message, details)

    @classmethod
    def from_pydantic(cls, exc: ValidationError | RequestValidationError) -> "ValidationFailed":
        return cls(field_errors(exc.errors()))

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls([{"field": field, "message": message}])


class NotFound(CRMError):
    """Missing entity, or one owned by another tenant. Both look the same."""

    status_code = 404
    code = "not_found"


class Conflict(CRMError):
    status_code = 409
    code = "conflict"

    def __init__(self, message: str, constraint: str):
        self.constraint = constraint
        super().__init__(message, {"constraint": constraint})


def field_errors(errors) -> list[dict]:
    """Flatten pydantic error dicts into [{field, message}]."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "header", "path")]
        details.append({"field": ".".join(loc) or "__root__", "message": err.get("msg", "Invalid value")})
    return details


def error_body(message: str, code: str, details: Any = None) -> dict:
    body = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError):
        ERRORS.labels(type=exc.code).inc()
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        ERRORS.labels(type="validation_error").inc()
        return JSONResponse(
            status_code=400,
            content=error_body("Validation failed", "validation_error", field_errors(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        ERRORS.labels(type="internal_error").inc()
        logger.exception("unhandled_error", method=request.method, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", "internal_error"),
        )

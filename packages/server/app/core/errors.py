"""
Service-layer error taxonomy and the HTTP handlers that render it.

Services raise these instead of HTTPException so they can be exercised
without a request. Every error is an expected business outcome: the
handlers map each one to a status code and a stable machine-readable code.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

log = structlog.get_logger()


class ServiceError(Exception):
    code = "ERROR"
    status_code = 400
    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class InvalidDependencyError(ServiceError):
    code = "INVALID_DEPENDENCY"
    default_message = "A task cannot depend on itself"


class AlreadyExistsError(ServiceError):
    code = "ALREADY_EXISTS"
    default_message = "Dependency already exists"


class CircularDependencyError(ServiceError):
    code = "CIRCULAR_DEPENDENCY"
    default_message = "This would create a circular dependency"


class ForbiddenError(ServiceError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class UnauthorizedError(ServiceError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentialsError(ServiceError):
    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid credentials"


class InvalidUserError(ServiceError):
    code = "INVALID_USER"
    default_message = "User is not a member of this organization"


class AlreadyMemberError(ServiceError):
    code = "ALREADY_MEMBER"
    default_message = "User is already a member of this project"


class CannotRemoveManagerError(ServiceError):
    code = "CANNOT_REMOVE_MANAGER"
    default_message = "Cannot remove the project manager. Assign a new manager first."


class ValidationFailedError(ServiceError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Validation failed"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def error_body(code: str, message: str, details: Any = None) -> dict:
    body: dict = {"success": False, "error": {"code": code, "message": message}}
    if details:
        body["error"]["details"] = details
    return body


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    log.info(
        "request.rejected",
        code=exc.code,
        status=exc.status_code,
        reason=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        details.setdefault(".".join(loc) or "request", []).append(err.get("msg", "invalid"))
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            error_body(ValidationFailedError.code, ValidationFailedError.default_message, details)
        ),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

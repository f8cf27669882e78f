"""Map errors to HTTP responses in one place.

Learn: Every error response has the same body:
    {"error": "<machine code>", "message": "<human text>"}

Credential and token failures deliberately use a single code each, no
matter which check failed (unknown kid, expired, bad signature...). The
specific class is only visible in logs. Anything unmapped is logged with
its traceback and answered with a generic 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from devnorth.errors import (
    CompetencyAlreadyExistsError,
    CompetencyNotFoundError,
    DevNorthError,
    EmailAlreadyExistsError,
    InvalidCompetencyNameError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidPasswordError,
    InvalidTokenError,
)

logger = structlog.get_logger()

# Order matters: first isinstance() match wins.
ERROR_RESPONSES = [
    (EmailAlreadyExistsError, 409, "email_already_exists", "An account with this email already exists"),
    (InvalidCredentialsError, 401, "invalid_credentials", "Invalid email or password"),
    (InvalidEmailError, 400, "invalid_email", "Invalid email format"),
    (InvalidPasswordError, 400, "invalid_password", "Password must be between 8 characters and 72 bytes"),
    (InvalidTokenError, 401, "invalid_token", "Invalid or expired token"),
    (CompetencyNotFoundError, 404, "competency_not_found", "Competency not found"),
    (CompetencyAlreadyExistsError, 409, "competency_already_exists", "A competency with this name already exists"),
    (InvalidCompetencyNameError, 400, "invalid_competency_name", "Competency name must be between 2 and 100 characters"),
]


def error_body(code: str, message: str) -> dict:
    return {"error": code, "message": message}


async def devnorth_error_handler(request: Request, exc: DevNorthError) -> JSONResponse:
    for error_class, status_code, code, message in ERROR_RESPONSES:
        if isinstance(exc, error_class):
            headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
            return JSONResponse(
                status_code=status_code,
                content=error_body(code, message),
                headers=headers,
            )
    return await unhandled_error_handler(request, exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
    return JSONResponse(
        status_code=422,
        content=error_body("validation_error", f"invalid request: {', '.join(fields)}"),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api.unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content=error_body("internal_server_error", "An unexpected error occurred"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DevNorthError, devnorth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

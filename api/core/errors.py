"""Error kinds, the service exception, and FastAPI handlers for both."""

import logging
from enum import StrEnum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    """Closed set of failure kinds raised by services and providers."""

    INVALID_REQUEST = "invalid_request"
    INVALID_STATE = "invalid_state"
    EXPIRED_STATE = "expired_state"
    PROVIDER_REJECTED = "provider_rejected"
    PROVIDER_PROTOCOL = "provider_protocol"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    NOT_CONFIGURED = "not_configured"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    DISABLED = "disabled"
    INVALID_TEMPLATE = "invalid_template"
    MISSING_VARIABLE = "missing_variable"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.INVALID_STATE: 401,
    ErrorKind.EXPIRED_STATE: 400,
    ErrorKind.PROVIDER_REJECTED: 401,
    ErrorKind.PROVIDER_PROTOCOL: 500,
    ErrorKind.PROVIDER_UNAVAILABLE: 502,
    ErrorKind.NOT_CONFIGURED: 503,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DISABLED: 403,
    ErrorKind.INVALID_TEMPLATE: 400,
    ErrorKind.MISSING_VARIABLE: 500,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INTERNAL: 500,
}

# Kinds whose message describes server-side state and must not reach clients
_HIDDEN_KINDS = {ErrorKind.MISSING_VARIABLE, ErrorKind.PROVIDER_PROTOCOL, ErrorKind.INTERNAL}

GENERIC_MESSAGE = "Internal server error."


class ServiceError(Exception):
    """A failure of a known kind, raised by services and provider clients."""

    def __init__(self, kind: ErrorKind, message: str | None = None):
        self.kind = kind
        self.message = message or kind.value.replace("_", " ").capitalize()
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @property
    def public_message(self) -> str:
        return GENERIC_MESSAGE if self.kind in _HIDDEN_KINDS else self.message

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.name}, {self.message!r})"


def error_body(message: str) -> dict:
    return {"success": False, "message": message}


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.kind in _HIDDEN_KINDS:
        logger.error(f"{request.method} {request.url.path}: {exc.kind.name}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.public_message))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Invalid request on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=ErrorKind.INVALID_REQUEST.status_code,
        content=error_body("The request parameters are invalid."),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=error_body(GENERIC_MESSAGE))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)

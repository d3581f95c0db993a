"""Global exception handlers for the FastAPI application.

Every failure leaves the API as an ``ErrorResponse``. Member service errors
map to an HTTP status through their error code, request validation errors
and Starlette HTTP exceptions are reshaped, and anything else becomes a 500
whose details are hidden in production.
"""

import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from member_service.api.schemas.errors import ErrorResponse, ServiceInfo
from member_service.api.utils.responses import ORJSONResponse
from member_service.core.config import Settings, get_settings
from member_service.core.context import RequestContext, generate_request_id
from member_service.core.error_context import sanitize_error_context
from member_service.core.exceptions import ErrorCode, MemberServiceError, Severity

ERROR_STATUS_CODES: dict[str, int] = {
    ErrorCode.BAD_REQUEST.value: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED.value: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN.value: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.STORE_READ_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.STORE_WRITE_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.EXTERNAL_SERVICE_ERROR.value: status.HTTP_502_BAD_GATEWAY,
}

# Status code -> (error code, severity) for HTTP exceptions raised by the framework
HTTP_ERROR_CODES: dict[int, tuple[ErrorCode, Severity]] = {
    status.HTTP_400_BAD_REQUEST: (ErrorCode.BAD_REQUEST, Severity.LOW),
    status.HTTP_401_UNAUTHORIZED: (ErrorCode.UNAUTHORIZED, Severity.HIGH),
    status.HTTP_403_FORBIDDEN: (ErrorCode.FORBIDDEN, Severity.MEDIUM),
    status.HTTP_404_NOT_FOUND: (ErrorCode.NOT_FOUND, Severity.LOW),
}


def get_service_info(settings: Settings) -> ServiceInfo:
    """Describe the running service for error responses."""
    return ServiceInfo(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


def status_code_for(exc: MemberServiceError) -> int:
    """HTTP status answering ``exc``; 500 for unmapped error codes."""
    return ERROR_STATUS_CODES.get(
        exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def _error_response(
    status_code: int,
    error_code: str,
    message: str,
    severity: Severity,
    settings: Settings,
    details: dict[str, Any] | None = None,
    debug_info: dict[str, Any] | None = None,
) -> Response:
    error_response = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        correlation_id=RequestContext.get_correlation_id(),
        request_id=RequestContext.get_request_id() or generate_request_id(),
        severity=severity.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )
    return ORJSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
    )


async def member_service_error_handler(request: Request, exc: Exception) -> Response:
    """Handle ``MemberServiceError`` and its subclasses.

    Raises:
        TypeError: If exc is not a MemberServiceError instance
    """
    if not isinstance(exc, MemberServiceError):
        raise TypeError(f"Expected MemberServiceError, got {type(exc).__name__}")

    settings = get_settings()
    status_code = status_code_for(exc)
    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "error_code": exc.error_code,
            "fingerprint": exc.fingerprint,
        },
    )

    log = logger.warning if exc.is_expected else logger.error
    log(
        "Handling {exception_type}: {message}",
        exception_type=type(exc).__name__,
        message=exc.message,
        status_code=status_code,
        **error_context,
    )

    debug_info = None
    if settings.environment == "development":
        debug_info = {
            "stack_trace": exc.stack_trace,
            "error_context": exc.context,
            "exception_type": type(exc).__name__,
        }
        if exc.cause:
            debug_info["cause"] = {
                "type": type(exc.cause).__name__,
                "message": str(exc.cause),
            }

    return _error_response(
        status_code,
        exc.error_code,
        exc.message,
        exc.severity,
        settings,
        details=exc.context or None,
        debug_info=debug_info,
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle ``RequestValidationError`` as a 400 with per-field messages.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        # ('query', 'page') -> 'page'
        location = error.get("loc", ())
        field_name = ".".join(str(part) for part in location[1:]) or "root"
        field_errors.setdefault(field_name, []).append(
            error.get("msg", "Invalid value")
        )

    logger.warning(
        "Request validation failed",
        **sanitize_error_context(
            exc,
            {
                "request_method": request.method,
                "request_path": str(request.url.path),
                "validation_errors": field_errors,
            },
        ),
    )

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorCode.BAD_REQUEST.value,
        "Request validation failed",
        Severity.LOW,
        get_settings(),
        details={"validation_errors": field_errors},
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette ``HTTPException`` (unknown routes, bad methods, ...).

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    error_code, severity = HTTP_ERROR_CODES.get(
        exc.status_code, (ErrorCode.INTERNAL_ERROR, Severity.MEDIUM)
    )
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        severity = Severity.HIGH

    logger.warning(
        "HTTP exception",
        **sanitize_error_context(
            exc,
            {
                "status": exc.status_code,
                "request_method": request.method,
                "request_path": str(request.url.path),
            },
        ),
    )

    return _error_response(
        exc.status_code,
        error_code.value,
        str(exc.detail),
        severity,
        get_settings(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any other exception as a 500, hiding details in production."""
    settings = get_settings()
    logger.exception(
        "Unhandled exception: {exception_type}",
        exception_type=type(exc).__name__,
        **sanitize_error_context(
            exc,
            {
                "request_method": request.method,
                "request_path": str(request.url.path),
            },
        ),
    )

    if settings.environment == "production":
        message = "An internal server error occurred"
        details = None
        debug_info = None
    else:
        message = f"Internal server error: {type(exc).__name__}"
        details = {"error": str(exc), "type": type(exc).__name__}
        debug_info = {
            "stack_trace": traceback.format_tb(exc.__traceback__),
            "exception_type": type(exc).__name__,
        }

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR.value,
        message,
        Severity.CRITICAL,
        settings,
        details=details,
        debug_info=debug_info,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with ``app``."""
    app.add_exception_handler(MemberServiceError, member_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")

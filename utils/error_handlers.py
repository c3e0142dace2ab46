"""
Error handling middleware and utilities for the Medical Document Explainer

Maps error codes to HTTP statuses, renders every error in one
``{"error": {...}}`` envelope, and holds the logging helpers the services
share.
"""
import logging
import time
import traceback
from typing import Any, Dict, Optional, Union
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.exceptions import MedExplainException, ErrorCode
from utils.logging import get_performance_logger

logger = logging.getLogger(__name__)


STATUS_CODE_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_FILE_TYPE: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    ErrorCode.EMPTY_FILE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FILE_TOO_LARGE: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrorCode.NO_DOCUMENT_LOADED: status.HTTP_409_CONFLICT,
    ErrorCode.ANSWER_IN_PROGRESS: status.HTTP_409_CONFLICT,
    ErrorCode.PDF_PROCESSING_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.LLM_SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.LLM_RATE_LIMIT: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.LLM_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorCode.LLM_API_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.REFORMAT_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.TRANSLATION_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.GLOSSARY_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.GLOSSARY_PARSE_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.ANSWER_FAILED: status.HTTP_502_BAD_GATEWAY,
}


def get_status_code_for_error_code(error_code: ErrorCode) -> int:
    """Map error codes to HTTP status codes"""
    return STATUS_CODE_MAP.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def create_error_response(
    error_code: Union[ErrorCode, str],
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Create a response in the ``{"error": {...}}`` envelope

    Args:
        error_code: The error code
        message: Error message
        status_code: HTTP status code
        details: Optional error details

    Returns:
        JSONResponse with error information
    """
    error_dict = {
        "error": {
            "code": error_code.value if isinstance(error_code, ErrorCode) else error_code,
            "message": message,
            "timestamp": _timestamp()
        }
    }

    if details:
        error_dict["error"]["details"] = details

    return JSONResponse(status_code=status_code, content=error_dict)


def application_error_response(exc: MedExplainException) -> JSONResponse:
    return JSONResponse(status_code=get_status_code_for_error_code(exc.error_code), content=exc.to_dict())


def http_error_response(exc: StarletteHTTPException) -> JSONResponse:
    # Controllers raise with a ready-made envelope as the detail
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return create_error_response("HTTP_ERROR", str(exc.detail), status_code=exc.status_code)


def validation_error_response(exc: RequestValidationError) -> JSONResponse:
    """422 listing each invalid field as ``body -> question`` style paths"""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]
    return create_error_response(
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"field_errors": field_errors}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render application, validation and HTTP errors in the shared envelope"""

    @app.exception_handler(MedExplainException)
    async def med_explain_exception_handler(request: Request, exc: MedExplainException):
        logger.warning(f"Application exception in {request.method} {request.url.path}: {exc}")
        return application_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error in {request.method} {request.url.path}: {len(exc.errors())} field(s)")
        return validation_error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return http_error_response(exc)


class ErrorHandlingMiddleware:
    """
    ASGI middleware that turns anything the exception handlers missed into
    an error response
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)

        try:
            await self.app(scope, receive, send)
        except Exception as e:
            response = await self.handle_error(request, e)
            await response(scope, receive, send)

    async def handle_error(self, request: Request, exc: Exception) -> JSONResponse:
        """
        Build the error response for an exception

        Unexpected exceptions become a generic 500 that names only the
        exception type.
        """
        if isinstance(exc, MedExplainException):
            logger.warning(f"Handled exception in {request.method} {request.url.path}: {exc}")
            return application_error_response(exc)
        if isinstance(exc, StarletteHTTPException):
            logger.warning(f"HTTP {exc.status_code} in {request.method} {request.url.path}: {exc.detail}")
            return http_error_response(exc)
        if isinstance(exc, RequestValidationError):
            return validation_error_response(exc)

        logger.error(
            f"Unhandled {type(exc).__name__} in {request.method} {request.url.path}: {exc}\n"
            f"{traceback.format_exc()}"
        )
        return create_error_response(
            ErrorCode.INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            details={"error_type": type(exc).__name__}
        )


def log_processing_step(step_name: str, details: Optional[Dict[str, Any]] = None):
    """
    Log a processing step with optional details

    Args:
        step_name: Name of the processing step
        details: Optional dictionary with step details
    """
    log_message = f"Processing step: {step_name}"
    if details:
        log_message += f" - {details}"

    logger.info(log_message)


def log_performance_metric(operation: str, duration_ms: int, details: Optional[Dict[str, Any]] = None):
    """Log how long an operation took to the performance logger"""
    log_message = f"{operation} completed in {duration_ms}ms"
    if details:
        log_message += f" - {details}"

    get_performance_logger().info(log_message)


def handle_service_degradation(service_name: str, error: Exception) -> Dict[str, Any]:
    """
    Record a graceful degradation (an operation failed but a fallback is in use)

    Args:
        service_name: Name of the failing operation
        error: The error that occurred

    Returns:
        Dictionary with degradation information
    """
    logger.warning(f"Service degradation detected for {service_name}: {error}")

    return {
        "service": service_name,
        "status": "degraded",
        "error": str(error),
        "fallback_available": True,
        "timestamp": _timestamp()
    }

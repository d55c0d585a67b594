"""
Global error handler middleware
Catches all exceptions and returns standardized error responses
"""
import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AppException, ErrorCode, http_exception_to_app_exception

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle AppException - our custom exceptions

    Returns user-friendly message to client, logs detailed internal message
    """
    # Client errors are expected traffic; only server-side failures are errors
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.error_code.value} - {exc.internal_message}",
        extra={
            "error_code": exc.error_code.value,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "user_message": exc.user_message,
            "details": exc.details
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle FastAPI HTTPException

    Convert to AppException format for consistency
    """
    app_exc = http_exception_to_app_exception(exc)

    logger.warning(
        f"HTTPException: {exc.status_code} - {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "detail": exc.detail
        }
    )

    return JSONResponse(
        status_code=app_exc.status_code,
        content=app_exc.to_dict(),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors

    Returns user-friendly field-specific error messages
    """
    field_errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        field_errors.append({
            "field": field,
            "message": error["msg"]
        })

    logger.warning(
        f"Validation error on {request.url.path}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": field_errors
        }
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": ErrorCode.INVALID_INPUT.value,
                "message": "Datos de entrada inválidos",
                "details": {
                    "fields": field_errors
                }
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions

    Logs full stack trace; the exception text reaches the client only in
    the local environment
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc()
        }
    )

    details = {}
    if settings.ENVIRONMENT == "local":
        details = {"exception": f"{type(exc).__name__}: {exc}"}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": ErrorCode.INTERNAL_SERVER_ERROR.value,
                "message": "Error interno del servidor, inténtalo más tarde",
                "details": details
            }
        }
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app

    Call this in main.py after creating the app
    """
    app.add_exception_handler(AppException, app_exception_handler)

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Catch-all for any other exceptions
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")

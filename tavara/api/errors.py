"""
Tavara.care Coordination Service - API Error Translation

Maps the exceptions raised by services to HTTP responses:
ValueError 400, PermissionError 403, NotFoundError 404,
ConflictError 409, IntegrationError 502, anything else 500.
"""

from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tavara.core.errors import NotFoundError, ConflictError, IntegrationError
from tavara.core.logging import logger, log_error
from tavara.monitoring.metrics import metrics_collector


def error_body(request: Request, error: str, message: str) -> dict:
    return {
        "error": error,
        "detail": message,
        "request_id": request.headers.get("X-Request-ID"),
        "timestamp": datetime.utcnow().isoformat()
    }


def register_exception_handlers(app: FastAPI):
    """Install the service exception handlers on the application."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error_body(request, "not_found", str(exc))
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body(request, "conflict", str(exc))
        )

    @app.exception_handler(PermissionError)
    async def permission_handler(request: Request, exc: PermissionError):
        logger.warning(f"Permission denied on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=error_body(request, "forbidden", str(exc))
        )

    @app.exception_handler(IntegrationError)
    async def integration_handler(request: Request, exc: IntegrationError):
        metrics_collector.record_error()
        logger.warning(
            f"Outbound call failed on {request.url.path}: {exc}",
            extra={"provider": exc.provider, "status_code": exc.status_code}
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=error_body(request, "integration_error", str(exc))
        )

    @app.exception_handler(ValueError)
    async def validation_handler(request: Request, exc: ValueError):
        logger.warning(f"Validation error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(request, "invalid_request", str(exc))
        )

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        metrics_collector.record_error()
        log_error(exc, context={"endpoint": request.url.path, "method": request.method})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                request,
                "internal_error",
                "An error occurred while processing your request. Please try again."
            )
        )

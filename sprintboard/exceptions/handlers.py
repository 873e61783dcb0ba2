# sprintboard/exceptions/handlers.py
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sprintboard.core import tracing
from sprintboard.exceptions.store import (
    SprintboardError,
    EntityNotFoundError,
    ConstraintViolationError,
    StoreError,
    WebhookSignatureError,
    InvalidUpdateError,
)
import time

# Domain error -> HTTP status
ERROR_STATUS = {
    EntityNotFoundError: status.HTTP_404_NOT_FOUND,
    ConstraintViolationError: status.HTTP_409_CONFLICT,
    WebhookSignatureError: status.HTTP_401_UNAUTHORIZED,
    InvalidUpdateError: status.HTTP_400_BAD_REQUEST,
    StoreError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_safe_headers(request: Request) -> dict:
    """Extract and mask sensitive headers for logging"""
    headers = request.headers
    return {
        "user_agent": headers.get("user-agent", "unknown"),
        "authorization": (headers.get("authorization", "")[:10] + "...") if headers.get("authorization") else "none",
        "referer": headers.get("referer", "none")
    }


def _error_body(detail, status_code: int, request: Request, **extra) -> dict:
    return {
        "detail": detail,
        "status_code": status_code,
        "trace_id": tracing.get_current_trace_id(),
        "timestamp": time.time(),
        "path": request.url.path,
        **extra
    }


async def sprintboard_exception_handler(request: Request, exc: SprintboardError) -> JSONResponse:
    status_code = next(
        (code for error_cls, code in ERROR_STATUS.items() if isinstance(exc, error_cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    log = tracing.error if status_code >= 500 else tracing.warning
    log(
        f"HTTP {status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request),
        error_type=type(exc).__name__
    )
    extra = {"errors": exc.errors} if isinstance(exc, InvalidUpdateError) else {}
    return JSONResponse(status_code=status_code, content=_error_body(exc.detail, status_code, request, **extra))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    tracing.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request),
        **get_safe_headers(request)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.status_code, request),
        headers=getattr(exc, 'headers', None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report every failing field at once; nothing has touched the store yet"""
    errors = [
        {
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]

    tracing.warning(
        f"Validation error: {len(errors)} errors",
        url=str(request.url),
        ip=get_remote_address(request),
        fields=[e["field"] for e in errors]
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation error", status.HTTP_400_BAD_REQUEST, request, errors=errors)
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    tracing.warning(
        f"Rate limit exceeded: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request)
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=_error_body(f"Rate limit exceeded: {exc.detail}", status.HTTP_429_TOO_MANY_REQUESTS, request)
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    tracing.log_error_with_context(
        f"Unhandled exception: {exc}",
        exception=exc,
        url=str(request.url),
        ip=get_remote_address(request),
        **get_safe_headers(request)
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            request,
            error_type=type(exc).__name__
        )
    )


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    tracing.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.status_code, request),
        headers=getattr(exc, 'headers', None)
    )

"""RFC 7807 Problem Details exception handlers for FastAPI."""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from medportal.core.exceptions import MedPortalError

_PROBLEM_JSON = "application/problem+json"

_ERROR_TYPES = {
    400: "urn:medportal:error:bad-request",
    401: "urn:medportal:error:unauthorized",
    403: "urn:medportal:error:forbidden",
    404: "urn:medportal:error:not-found",
    405: "urn:medportal:error:method-not-allowed",
    409: "urn:medportal:error:conflict",
    429: "urn:medportal:error:rate-limit",
    500: "urn:medportal:error:internal-server",
    503: "urn:medportal:error:service-unavailable",
}

_ERROR_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _problem(
    request: Request,
    status_code: int,
    detail: str,
    reason: str,
    type_uri: Optional[str] = None,
    title: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "type": type_uri or _ERROR_TYPES.get(status_code, f"urn:medportal:error:http-{status_code}"),
        "title": title or _ERROR_TITLES.get(status_code, "Error"),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
        "reason": reason,
        "success": False,
        "message": detail,
    }
    if extra:
        content.update({k: v for k, v in extra.items() if k not in content})
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers or {},
        media_type=_PROBLEM_JSON,
    )


async def medportal_error_handler(request: Request, exc: MedPortalError) -> JSONResponse:
    """Convert application errors to RFC 7807 Problem Details format."""
    headers = dict(getattr(exc, "headers", None) or {})
    if exc.status_code == 401:
        headers.setdefault("WWW-Authenticate", "Bearer")

    detail = exc.message
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
        settings = getattr(request.app.state, "settings", None)
        if settings is None or settings.is_production():
            detail = "Internal server error"

    return _problem(
        request,
        exc.status_code,
        detail,
        exc.reason,
        type_uri=exc.error_type_uri,
        title=exc.title,
        extra=exc.details if exc.status_code < 500 else None,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Convert Starlette HTTPException (404 routes, 405 methods) to RFC 7807 format."""
    status_code = exc.status_code
    return _problem(
        request,
        status_code,
        exc.detail if isinstance(exc.detail, str) else str(exc.detail),
        reason=f"http_{status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert Pydantic validation errors to RFC 7807 format."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors[field] = error["msg"]

    return _problem(
        request,
        400,
        "Request validation failed",
        reason="validation_error",
        extra={"errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the stack trace, return a generic 500."""
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.is_development():
        detail = f"{type(exc).__name__}: {exc}"
    else:
        detail = "Internal server error"
    return _problem(request, 500, detail, reason="internal_error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the RFC 7807 handlers on ``app``."""
    app.add_exception_handler(MedPortalError, medportal_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

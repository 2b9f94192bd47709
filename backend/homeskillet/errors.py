# backend/homeskillet/errors.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


def ok(data: Any = None) -> dict[str, Any]:
    return {"success": True, "data": data}


def error_body(message: str, *, code: Optional[str] = None, details: Any = None) -> dict[str, Any]:
    err: dict[str, Any] = {"message": message}
    if code:
        err["code"] = code
    if details is not None:
        err["details"] = details
    return {"success": False, "error": err}


class ApiError(HTTPException):
    """
    Base for errors the API raises on purpose.

    Subclasses pin the status; `code` is a machine-readable kind and `details`
    carries field-level problems for validation failures.
    """

    status = 400
    default_code = "bad_request"

    def __init__(self, message: str, *, code: Optional[str] = None, details: Any = None):
        super().__init__(status_code=self.status, detail=message)
        self.message = message
        self.code = code or self.default_code
        self.details = details


class ValidationFailed(ApiError):
    status = 400
    default_code = "validation_error"


class AuthenticationError(ApiError):
    status = 401
    default_code = "authentication_error"


class AuthorizationError(ApiError):
    status = 403
    default_code = "authorization_error"


class NotFoundError(ApiError):
    status = 404
    default_code = "not_found"


class ConflictError(ApiError):
    status = 409
    default_code = "conflict"


def field_error(field: str, message: str) -> ValidationFailed:
    return ValidationFailed("Validation failed", details=[{"field": field, "message": message}])


def _loc_to_field(loc: tuple | list) -> str:
    parts = [str(x) for x in loc if x not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, code=exc.code, details=exc.details),
        headers=getattr(exc, "headers", None),
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = str(exc.detail) if exc.detail is not None else "Error"
    # router-level miss (no matching route) vs. a handler raising 404 itself
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"field": _loc_to_field(e.get("loc", ())), "message": str(e.get("msg", ""))} for e in exc.errors()]
    return JSONResponse(status_code=400, content=error_body("Validation failed", code="validation_error", details=details))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error", code="internal_error"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

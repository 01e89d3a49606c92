"""
Error taxonomy for the task API and the handlers that turn it into envelopes.

Every failure leaves the service as ``{"success": false, "error": "..."}``;
validation failures add a ``details`` list, and 500s add ``stack`` when the
app runs with ``environment=development``.
"""

from __future__ import annotations

import logging
import sqlite3
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[List[Dict[str, str]]] = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"


class InvalidInput(ApiError):
    status_code = 400
    default_message = "Valid task ID is required"


class NotFound(ApiError):
    status_code = 404
    default_message = "Task not found"


class ConstraintViolation(ApiError):
    status_code = 400
    default_message = "Data constraint violation"


class Conflict(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class Internal(ApiError):
    status_code = 500


def classify_storage_error(exc: sqlite3.Error) -> ApiError:
    if isinstance(exc, sqlite3.IntegrityError):
        if "UNIQUE" in str(exc).upper():
            return Conflict()
        return ConstraintViolation()
    return Internal()


def validation_details(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic/FastAPI errors into ``[{"field", "message"}]``."""
    details = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "")})
    return details


def error_body(error: ApiError, *, stack: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": error.message}
    if error.details is not None:
        body["details"] = error.details
    if stack is not None:
        body["stack"] = stack
    return body


def _respond(request: Request, error: ApiError, exc: BaseException) -> JSONResponse:
    stack = None
    if error.status_code >= 500:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        settings = getattr(request.app.state, "settings", None)
        if settings is not None and settings.is_development:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        logger.warning("%s %s -> %s %s", request.method, request.url.path, error.status_code, error.message)
    return JSONResponse(status_code=error.status_code, content=error_body(error, stack=stack))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        return _respond(request, exc, exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _respond(request, ValidationError(details=validation_details(exc.errors())), exc)

    @app.exception_handler(sqlite3.Error)
    async def _storage_error(request: Request, exc: sqlite3.Error) -> JSONResponse:
        return _respond(request, classify_storage_error(exc), exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = ApiError(str(exc.detail))
        error.status_code = exc.status_code
        return _respond(request, error, exc)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        return _respond(request, Internal(), exc)

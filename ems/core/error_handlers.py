"""
Every failure leaves the API as ``{"success": false, "errors": [...]}``.

Validation entries carry ``field`` and ``msg``; everything else carries ``msg``
plus ``code`` and ``title`` when the raising code supplied them.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ems.core.exceptions import AppException

logger = logging.getLogger(__name__)


def error_response(status_code: int, errors: List[Dict[str, Any]], headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "errors": errors}, headers=headers)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    # loc looks like ("body", "email") or ("query", "year")
    errors = [
        {"field": str(err["loc"][-1]) if err.get("loc") else "unknown", "msg": err["msg"]}
        for err in exc.errors()
    ]
    logger.warning(f"Validation failed on {request.url.path}: {errors}")
    return error_response(422, errors)


async def handle_app_exception(request: Request, exc: AppException):
    logger.warning(f"{exc.error_code}: {exc.message}", extra={"path": request.url.path})
    entry = {"msg": exc.message, "code": exc.error_code}
    if exc.title:
        entry["title"] = exc.title
    return error_response(exc.status_code, [entry])


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, [{"msg": msg}], headers=getattr(exc, "headers", None))


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return error_response(500, [{"msg": "An unexpected server error occurred."}])


def register_exception_handlers(app: FastAPI):
    # fastapi.HTTPException subclasses the starlette one, so one entry covers both
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(AppException, handle_app_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)

"""
Uniform response envelope and the exception handlers that render failures.

Success: ``{"success": true, "error": false, "data": ..., "message": ...}``
Failure: ``{"success": false, "error": true, "message": ...}``
"""
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = structlog.get_logger(__name__)


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    body = {"success": True, "error": False}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def error_body(message: str) -> dict:
    return {"success": False, "error": True, "message": message}


def format_validation_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "Invalid value"))
    return "; ".join(parts) or "Invalid request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body(format_validation_errors(exc.errors())))


async def model_validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=error_body(format_validation_errors(exc.errors())))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    log.info("duplicate_key", path=request.url.path)
    return JSONResponse(status_code=400, content=error_body("Duplicate value for a unique field"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, model_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

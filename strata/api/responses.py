"""API response envelope and error handlers.

Success: ``{"data": ..., "warning": null | "..."}``
Failure: ``{"error": {"code": "...", "message": "..."}}``
"""

import logging
from decimal import Decimal
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from strata.errors import AppError, InvalidInputError

logger = logging.getLogger(__name__)


def envelope(data: Any, warning: str | None = None) -> Dict[str, Any]:
    """Wrap a payload in the success envelope; money is serialised as strings."""
    return jsonable_encoder({"data": data, "warning": warning}, custom_encoder={Decimal: str})


def error_response(error: AppError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


def first_validation_message(exc: RequestValidationError) -> str:
    """The first validation failure, using the validator's own message when it has one."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    ctx_error = (first.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "header")]
    if location:
        return f"{'.'.join(location)}: {first.get('msg', 'Invalid input')}"
    return first.get("msg", "Invalid input")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = InvalidInputError(first_validation_message(exc))
    return JSONResponse(status_code=error.http_status, content=error_response(error))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


__all__ = [
    "envelope",
    "error_response",
    "first_validation_message",
    "register_exception_handlers",
]

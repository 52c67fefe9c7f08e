"""
Error handling for the HTTP layer.

- RequestValidationError (malformed JSON, wrong types, bad UUIDs) -> 400
  with the same {"errors": {...}} envelope the service uses
- Any other exception -> opaque 500, details only in the log
"""

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from message_api.responses import internal_error_response
from message_api.schemas import ValidationErrorResponse

logger = logging.getLogger(__name__)

REQUEST_FIELD = "Request"


def _field_name(error: dict) -> str:
    loc = error.get("loc") or ()
    if error.get("type") == "json_invalid" or len(loc) < 2:
        return REQUEST_FIELD
    name = ".".join(str(part) for part in loc[1:])
    # Body fields are reported the way the service names them (Title, Content)
    if loc[0] == "body":
        return name[:1].upper() + name[1:]
    return name


def build_validation_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        errors.setdefault(_field_name(error), []).append(error.get("msg", "Invalid value"))
    return errors


def register_error_handlers(app: FastAPI) -> None:
    """Register request validation handling on the FastAPI app."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ValidationErrorResponse(errors=build_validation_errors(exc)).model_dump(),
        )


class ExceptionHandlingMiddleware(BaseHTTPMiddleware):
    """Turn unhandled exceptions into a 500 response that leaks no internals."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
            return internal_error_response()

"""
Translation of service results into HTTP responses.

| Result          | Status |
|-----------------|--------|
| Success         | 200    |
| Created         | 201    |
| Updated/Deleted | 204    |
| NotFound        | 404    |
| Conflict        | 409    |
| ValidationError | 400    |
| anything else   | 500    |
"""

import logging
import re
from typing import Optional

from fastapi import Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from message_api.results import (
    Conflict,
    Created,
    Deleted,
    NotFound,
    Result,
    Success,
    Updated,
    ValidationError,
)
from message_api.schemas import ErrorResponse, ValidationErrorResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "An unexpected error occurred."


def result_name(result: Result) -> str:
    """Snake-case variant name used in logs and metrics, e.g. ValidationError -> validation_error."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", type(result).__name__).lower()


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail=INTERNAL_ERROR_DETAIL).model_dump(),
    )


def to_response(result: Result, location: Optional[str] = None) -> Response:
    """
    Build the HTTP response for a service result.

    Args:
        result: Outcome returned by MessageService
        location: URL of the new resource, sent as Location for Created
    """
    if isinstance(result, Success):
        return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(result.value))

    if isinstance(result, Created):
        headers = {"Location": location} if location else None
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=jsonable_encoder(result.value),
            headers=headers,
        )

    if isinstance(result, (Updated, Deleted)):
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    if isinstance(result, NotFound):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=ErrorResponse(detail=result.message).model_dump(),
        )

    if isinstance(result, Conflict):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=ErrorResponse(detail=result.message).model_dump(),
        )

    if isinstance(result, ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ValidationErrorResponse(errors=result.errors).model_dump(),
        )

    logger.error(f"No response mapping for result type {type(result).__name__}")
    return internal_error_response()

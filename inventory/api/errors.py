"""Translate exceptions into structured error responses."""
import logging
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory.exceptions import InventoryError, ValidationFailedError
from inventory.schemas.error import ErrorResponse, FieldError

logger = logging.getLogger(__name__)

# Request location prefixes that carry no field information
_LOCATION_PREFIXES = ("body", "query", "path")


def _error_response(
    status_code: int,
    error: str,
    message: str,
    request: Request,
    field_errors: Optional[list[FieldError]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=error,
        message=message,
        path=request.url.path,
        field_errors=field_errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    logger.warning(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")

    field_errors = None
    if isinstance(exc, ValidationFailedError) and exc.field:
        field_errors = [
            FieldError(field=exc.field, rejected_value=exc.rejected_value, message=exc.message)
        ]
    return _error_response(exc.status_code, exc.error, exc.message, request, field_errors)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    field_errors = []
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part not in _LOCATION_PREFIXES]
        field_errors.append(
            FieldError(
                field=".".join(location) or "request",
                rejected_value=error.get("input"),
                message=error["msg"],
            )
        )
    logger.warning(
        f"Validation failed on {request.method} {request.url.path}: "
        f"{[f.field for f in field_errors]}"
    )
    return _error_response(
        400, "Validation Failed", "The submitted data is not valid", request, field_errors
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code, HTTPStatus(exc.status_code).phrase, str(exc.detail), request
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Internal server error on {request.method} {request.url.path}: {exc}", exc_info=exc
    )
    return _error_response(500, "Internal Server Error", "An internal error occurred", request)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that render every failure as an ErrorResponse."""
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

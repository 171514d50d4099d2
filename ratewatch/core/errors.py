from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

from ratewatch.models.constants import UnsupportedCurrencyError
from ratewatch.services.rates.rollback import BaseChangeInProgressError

logger = logging.getLogger("ratewatch.errors")


def http_error_handler(request: Request, exc):  # type: ignore
    code = getattr(exc, "status_code", status.HTTP_404_NOT_FOUND)
    if code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        detail = f"No route for {request.method} {request.url.path}"
    else:
        detail = exc.detail
    return JSONResponse(
        status_code=code,
        content={
            "error": "not_found" if code == 404 else "http_error",
            "detail": detail,
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def unsupported_currency_handler(request: Request, exc: UnsupportedCurrencyError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "unsupported_currency", "detail": str(exc)},
    )


def change_in_progress_handler(request: Request, exc: BaseChangeInProgressError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "base_change_in_progress", "detail": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )

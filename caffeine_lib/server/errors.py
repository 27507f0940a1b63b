"""Translate error kinds into HTTP responses.

Kinds are preserved all the way from the backend so the status class tells
clients whether to create a namespace, fix their input or retry later.
"""
from fastapi import Request
from starlette.responses import JSONResponse

from caffeine_lib.errors import (
    BackendFault,
    BrokerUnavailable,
    CaffeineError,
    CorruptRecord,
    InvalidFilter,
    NotFoundNamespace,
    NotFoundRecord,
    ValidationFailure,
)
import logging

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (NotFoundRecord, 404),
    (NotFoundNamespace, 400),
    (ValidationFailure, 400),
    (InvalidFilter, 400),
    (BrokerUnavailable, 503),
    (CorruptRecord, 500),
    (BackendFault, 500),
)


def status_for(exc: CaffeineError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


def error_response(exc: CaffeineError, status_code: int | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code or status_for(exc), content=exc.to_dict())


async def caffeine_error_handler(request: Request, exc: CaffeineError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: [%s] %s", request.method, request.url.path, exc.code, exc)
    return error_response(exc, status)

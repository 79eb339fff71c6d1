"""Conversion of internal failures into operation results."""

import logging

import httpx

from storefront.schemas.results import ErrorKind, OperationError
from storefront.services.rakuten_client import (
    RakutenAuthError,
    RakutenConfigError,
    RakutenError,
    RakutenParseError,
)

logger = logging.getLogger("uvicorn.error")


def error_kind(exc: BaseException) -> ErrorKind:
    # Order matters: RakutenParseError subclasses RakutenUpstreamError.
    if isinstance(exc, RakutenConfigError):
        return ErrorKind.CONFIGURATION
    if isinstance(exc, RakutenAuthError):
        return ErrorKind.AUTHENTICATION
    if isinstance(exc, RakutenParseError):
        return ErrorKind.PARSE
    return ErrorKind.UPSTREAM


def failure(
    exc: RakutenError | httpx.HTTPError,
    context: str,
    error_cls: type[OperationError] = OperationError,
    **extra: object,
) -> OperationError:
    """Build the error result for ``exc`` raised while running ``context``."""
    if isinstance(exc, RakutenError):
        message = str(exc)
    else:
        logger.error(f"Network error during {context}: {exc!r}")
        message = f"An unexpected error occurred during {context}: {exc}"
    return error_cls(error=message, kind=error_kind(exc), **extra)


def invalid_request(message: str, error_cls: type[OperationError] = OperationError, **extra: object) -> OperationError:
    return error_cls(error=message, kind=ErrorKind.INVALID_REQUEST, **extra)


def not_found(message: str) -> OperationError:
    return OperationError(error=message, kind=ErrorKind.NOT_FOUND)

"""Mapping of operation errors onto HTTP errors."""

from fastapi import HTTPException

from storefront.schemas.common import ErrorResponse
from storefront.schemas.results import ErrorKind, OperationError

STATUS_BY_KIND = {
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.AUTHENTICATION: 502,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.PARSE: 502,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_REQUEST: 400,
}

CODE_BY_KIND = {
    ErrorKind.CONFIGURATION: "UPSTREAM_NOT_CONFIGURED",
    ErrorKind.AUTHENTICATION: "UPSTREAM_AUTH_FAILED",
    ErrorKind.UPSTREAM: "UPSTREAM_ERROR",
    ErrorKind.PARSE: "UPSTREAM_BAD_RESPONSE",
    ErrorKind.NOT_FOUND: "NOT_FOUND",
    ErrorKind.INVALID_REQUEST: "INVALID_REQUEST",
}


def http_error(result: OperationError, detail: dict | None = None) -> HTTPException:
    """HTTPException carrying the structured error envelope for ``result``."""
    extra = result.model_dump(by_alias=True, exclude={"error"}, exclude_none=True)
    if detail:
        extra.update(detail)
    return HTTPException(
        status_code=STATUS_BY_KIND[result.kind],
        detail=ErrorResponse.body(CODE_BY_KIND[result.kind], result.error, extra or None),
    )


def upstream_error(message: str, detail: dict | None = None) -> HTTPException:
    return http_error(OperationError(error=message, kind=ErrorKind.UPSTREAM), detail)

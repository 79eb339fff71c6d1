"""Failure side of every core operation's result.

Each operation returns either its success model or an ``OperationError``.
Callers discriminate on the presence of the ``error`` field; no exception
crosses an operation boundary.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Failure category. Not serialized; used by the HTTP layer for status codes."""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    UPSTREAM = "upstream"
    PARSE = "parse"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"


class OperationError(BaseModel):
    """Single-field error result: ``{"error": "..."}``."""

    error: str
    kind: ErrorKind = Field(default=ErrorKind.UPSTREAM, exclude=True)


class LinkSearchError(OperationError):
    """Link-search failure, carrying the upstream URL that was called."""

    request_url: str | None = Field(alias="requestUrl", default=None)

    model_config = {"populate_by_name": True}


def is_error(result: object) -> bool:
    """True when an operation result is the error side of the union."""
    return isinstance(result, OperationError) or bool(getattr(result, "error", None))

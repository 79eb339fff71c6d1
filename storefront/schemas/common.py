"""Error envelope shared by every HTTP error response."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """``{"error": {"code": ..., "message": ..., "detail": ...}}``

    ``code`` is machine-readable (``UPSTREAM_ERROR``, ``NOT_FOUND``, ...);
    ``message`` is the operation's error string, shown to users as is.
    """

    error: ErrorDetail

    @classmethod
    def body(cls, code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
        """JSON-ready envelope."""
        return cls(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump()

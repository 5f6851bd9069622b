"""Error types for clipcat.

Every error raised by the catalog engine derives from ClipcatError and
carries a stable ErrorCode so the CLI can emit structured JSON errors.
"""

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    CATALOG_LOAD_FAILED = "CATALOG_LOAD_FAILED"
    DOCUMENT_UNREADABLE = "DOCUMENT_UNREADABLE"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    READ_STATE_DISABLED = "READ_STATE_DISABLED"
    READ_STATE_WRITE_FAILED = "READ_STATE_WRITE_FAILED"
    FRONTMATTER_UPDATE_FAILED = "FRONTMATTER_UPDATE_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ClipcatError(Exception):
    """Base error with a code and optional details."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload

    def to_json(self) -> str:
        return json.dumps({"error": self.to_dict()}, default=str)


class CatalogLoadError(ClipcatError):
    """Document enumeration failed; the whole refresh pass is lost."""

    code = ErrorCode.CATALOG_LOAD_FAILED


class DocumentError(ClipcatError):
    """A single document could not be read or parsed."""

    code = ErrorCode.DOCUMENT_UNREADABLE

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}", details={"path": path})


class RecordNotFoundError(ClipcatError):
    """No catalog record with the requested id in the current snapshot."""

    code = ErrorCode.RECORD_NOT_FOUND


class ReadStateError(ClipcatError):
    """Persisting the read flag failed (the optimistic update was rolled back)."""

    code = ErrorCode.READ_STATE_WRITE_FAILED


class FrontmatterUpdateError(ClipcatError):
    """A front-matter patch could not be applied without side effects."""

    code = ErrorCode.FRONTMATTER_UPDATE_FAILED


def format_error_json(code: ErrorCode, message: str, details: dict | None = None) -> str:
    """Format an error that is not a ClipcatError as JSON."""
    payload: dict[str, Any] = {"code": code.value, "message": message}
    if details:
        payload["details"] = details
    return json.dumps({"error": payload}, default=str)

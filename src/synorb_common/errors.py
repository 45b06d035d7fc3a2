from __future__ import annotations

from typing import Any

REDACT_TOKEN = "***redacted***"


def typed_error(code: str, message: str, *, details: dict | None = None, **extra: Any) -> dict:
    """
    Standard error envelope:
      {"error": {"code": code, "message": message, "details": {...}}, ...extra}
    """
    err: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        err["error"]["details"] = details
    if extra:
        err.update(extra)
    return err


class SynorbError(Exception):
    """Base class for request-fatal errors raised before or around an upstream call."""

    code = "internal"
    http_status = 500

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return typed_error(self.code, self.message, details=self.details)


class MissingCredentialsError(SynorbError):
    code = "auth_error"
    http_status = 401

    def __init__(self, message: str = "API credentials not configured") -> None:
        super().__init__(message)


class UnknownToolError(SynorbError):
    code = "unknown_tool"
    http_status = 400

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}", details={"name": name})
        self.name = name


class ArgumentValidationError(SynorbError, ValueError):
    code = "validation_error"
    http_status = 400

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, details={"field": field} if field else None)
        self.field = field

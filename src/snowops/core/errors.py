"""Typed errors raised by the reverse/forward engineering core.

Core code raises these errors with structured fields so callers and tests can
inspect what failed. Only the outermost API edge (`snowops.api`) collapses
them into the single `{"message": ...}` payload the host expects.
"""

from __future__ import annotations

from typing import Any

DEFAULT_ERROR_MESSAGE = "Reverse Engineering error"


class SnowopsError(RuntimeError):
    """Base class for all snowops errors."""


class SnowflakeConnectionError(SnowopsError):
    """Raised when a Snowflake session cannot be established or closed."""

    def __init__(self, message: str, *, account: str | None = None):
        super().__init__(message)
        self.account = account


class RetrievalError(SnowopsError):
    """Raised when a describe/show/sample/count statement fails for an entity."""

    def __init__(
        self,
        message: str,
        *,
        entity: str | None = None,
        statement: str | None = None,
    ):
        super().__init__(message)
        self.entity = entity
        self.statement = statement


class ConfigurationError(SnowopsError, ValueError):
    """Raised for malformed sampling policies, schema references or settings."""

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


def to_error_payload(error: BaseException | str | None) -> dict[str, Any]:
    """Collapse an error into the host-facing `{"message": str}` payload."""
    if isinstance(error, str):
        return {"message": error}
    message = str(error) if error is not None else ""
    return {"message": message or DEFAULT_ERROR_MESSAGE}

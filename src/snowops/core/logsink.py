"""A ProgressSink that writes to the standard logging tree."""

from __future__ import annotations

import logging
from typing import Any, Mapping

REDACTED = "***"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def redact(payload: Any, hidden_keys: tuple[str, ...] | list[str] = ()) -> Any:
    """Return a copy of `payload` with values under `hidden_keys` masked (recursively)."""
    if not hidden_keys:
        return payload
    if isinstance(payload, Mapping):
        return {
            k: REDACTED if k in hidden_keys and v else redact(v, hidden_keys)
            for k, v in payload.items()
        }
    if isinstance(payload, list):
        return [redact(v, hidden_keys) for v in payload]
    return payload


class LoggingSink:
    """Forwards log and progress events to a `logging.Logger`."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("snowops")

    def log(
        self,
        level: str,
        payload: Any,
        message: str,
        hidden_keys: tuple[str, ...] = (),
    ) -> None:
        self.logger.log(
            _LEVELS.get(level.lower(), logging.INFO),
            "%s: %s",
            message,
            redact(payload, hidden_keys),
        )

    def progress(self, message: str, container_name: str, entity_name: str) -> None:
        self.logger.debug("[%s] %s: %s", container_name, entity_name, message)

    def clear(self) -> None:
        return None

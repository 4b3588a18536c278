"""
Base Service Class.

Standardizes the logger pattern for all services and the way a
classified failure is written to the log before it is turned into a
result model.
"""

from __future__ import annotations

from vasudha_access.errors import AccessError
from vasudha_access.logger import StructuredLogger


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _log_failure(self, event: str, exc: AccessError, **fields: object) -> None:
        """Log *exc* under *event*; the cause goes to the log, never to the user."""
        extra: dict[str, object] = {"event": event, "error_code": str(exc.kind)}
        extra.update(fields)
        if exc.original_error is not None:
            extra["cause"] = repr(exc.original_error)
        self._logger.warning("%s: %s", event, exc.message, extra=extra)

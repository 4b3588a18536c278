"""
Base Repository.

Provides shared infrastructure for Supabase-backed repositories:
- DatabaseManager reference
- Logger reference
- A single place that turns PostgREST / network failures into the
  workflow error taxonomy
"""

from __future__ import annotations

from typing import Callable, TypeVar

from supabase import Client as SupabaseClient

from vasudha_access.database import DatabaseManager
from vasudha_access.errors import ConflictError, TransientError, is_network_error
from vasudha_access.logger import StructuredLogger

T = TypeVar("T")

# PostgreSQL SQLSTATE for unique_violation
_UNIQUE_VIOLATION: str = "23505"


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        elevated: bool = False,
    ) -> None:
        self._db = db
        self._logger = logger
        self._elevated = elevated

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client for table operations.

        Elevated repositories (server-side only) use the service-role
        client, which is not subject to row-level security.
        """
        if self._elevated:
            return self._db.supabase_admin
        return self._db.supabase

    def _execute(self, op: Callable[[], T], *, operation_name: str) -> T:
        """Run a table operation, classifying any failure.

        No retries and no fallback store: a failure is surfaced
        immediately so the calling workflow can fail closed.

        Raises
        ------
        ConflictError
            On a unique-key violation (duplicate ``id`` or ``username``).
        TransientError
            On any other failure, including an unconfigured client.
        """
        try:
            return op()
        except Exception as exc:
            if self._is_unique_violation(exc):
                self._logger.warning(
                    "Unique violation on %s: %s", operation_name, exc,
                    extra={"event": "DB_CONFLICT", "table": self.TABLE},
                )
                raise ConflictError(
                    "A profile with these details already exists.",
                    original_error=exc,
                ) from exc

            self._logger.error(
                "Supabase operation %s failed: %s", operation_name, exc,
                extra={
                    "event": "DB_ERROR",
                    "table": self.TABLE,
                    "network": is_network_error(exc),
                },
            )
            raise TransientError(
                "The profile service is unavailable. Please try again later.",
                original_error=exc,
            ) from exc

    @staticmethod
    def _is_unique_violation(exc: Exception) -> bool:
        if str(getattr(exc, "code", "") or "") == _UNIQUE_VIOLATION:
            return True
        text = str(exc).lower()
        return _UNIQUE_VIOLATION in text or "duplicate key" in text

"""
Supabase Connection Layer.

Owns the two Supabase clients the system talks through:

- **public client** (anon key): identity sign-up / sign-in / sign-out
  and ``profiles`` reads and inserts under row-level security.  Holds
  the current session for client-side workflows.
- **admin client** (service-role key): only built for the registration
  proxy, which needs confirmed identity creation and rollback deletes.

This module only manages the raw connections; it contains no query
logic.

Usage (dependency injection at app startup)::

    from vasudha_access.database import DatabaseManager
    from vasudha_access.logger import StructuredLogger

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        service_role_key=config.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )
"""

from __future__ import annotations

from typing import Optional

from supabase import Client as SupabaseClient
from supabase import create_client

from vasudha_access.logger import StructuredLogger


class DatabaseManager:
    """Builds and hands out the Supabase clients.

    When the URL or a key is empty the matching client is **not** created
    and its property raises ``RuntimeError``.  The service-client adapters
    classify that ``RuntimeError`` as a transient "service unavailable"
    failure, so workflows fail cleanly instead of crashing.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
    supabase_key:
        The publishable anon key.
    logger:
        A ``StructuredLogger`` instance.
    service_role_key:
        Optional elevated key.  Never pass it from client-side code.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
        service_role_key: str = "",
    ) -> None:
        self._logger: StructuredLogger = logger
        self._supabase: Optional[SupabaseClient] = self._connect(
            supabase_url, supabase_key, label="public",
        )
        self._supabase_admin: Optional[SupabaseClient] = None
        if service_role_key:
            self._supabase_admin = self._connect(
                supabase_url, service_role_key, label="admin",
            )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """Return the anon-key client.

        Raises
        ------
        RuntimeError
            If the client was not initialised.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return self._supabase

    @property
    def supabase_admin(self) -> SupabaseClient:
        """Return the service-role client.

        Raises
        ------
        RuntimeError
            If no service-role key was configured.
        """
        if self._supabase_admin is None:
            raise RuntimeError(
                "Supabase admin client is not initialised. "
                "SUPABASE_SERVICE_ROLE_KEY is required for this operation."
            )
        return self._supabase_admin

    @property
    def is_online(self) -> bool:
        """``True`` when the anon-key client is available."""
        return self._supabase is not None

    @property
    def has_admin(self) -> bool:
        """``True`` when the service-role client is available."""
        return self._supabase_admin is not None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect(self, url: str, key: str, *, label: str) -> Optional[SupabaseClient]:
        if not url or not key:
            self._logger.warning(
                "Supabase %s credentials not configured; client disabled.", label,
            )
            return None
        try:
            client = create_client(url, key)
            self._logger.info("Supabase %s client initialized.", label)
            return client
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase %s credential format error: %s. Client disabled.",
                label,
                exc,
            )
        except Exception as exc:
            self._logger.error(
                "Unexpected Supabase %s initialization failure: %s. Client disabled.",
                label,
                exc,
                exc_info=True,
            )
        return None

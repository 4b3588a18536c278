"""
Profile Repository.

All access to the ``profiles`` table.  There is no cache: every read
goes to Supabase so authorization decisions always see the stored
truth.
"""

from __future__ import annotations

from typing import Optional

from vasudha_access.models.profile import Profile
from vasudha_access.repositories.base_repository import BaseRepository

_UPDATABLE_FIELDS: frozenset[str] = frozenset({"approved", "blocked"})


class ProfileRepository(BaseRepository):
    """Data access layer for ``Profile`` rows.

    **No ``delete()`` method.**  Profiles are removed only by an
    administrator, out of band.  Access is revoked with ``blocked``.
    """

    TABLE = "profiles"

    def insert(self, profile: Profile) -> Profile:
        """Insert a new row.

        A plain insert, never an upsert: a second insert for the same
        ``id`` must fail rather than overwrite a row.

        Raises
        ------
        ConflictError
            If ``id`` or ``username`` already exists.
        """
        def _op() -> Profile:
            response = self.supabase.table(self.TABLE).insert(profile.to_record()).execute()
            return Profile(**response.data[0]) if response.data else profile

        created = self._execute(_op, operation_name="insert (profiles)")
        self._logger.info("Profile inserted: %s", created.id)
        return created

    def fetch_by_id(self, profile_id: str) -> Optional[Profile]:
        """Fetch a profile by primary key, ``None`` when no row exists."""
        def _op() -> Optional[Profile]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", profile_id)
                .limit(1)
                .execute()
            )
            return Profile(**response.data[0]) if response.data else None

        return self._execute(_op, operation_name="fetch_by_id (profiles)")

    def username_exists(self, username: str) -> bool:
        def _op() -> bool:
            response = (
                self.supabase.table(self.TABLE)
                .select("id")
                .eq("username", username)
                .limit(1)
                .execute()
            )
            return bool(response.data)

        return self._execute(_op, operation_name="username_exists (profiles)")

    def update(self, profile_id: str, fields: dict[str, object]) -> Optional[Profile]:
        """Apply an approve / block toggle.  Returns ``None`` if not found.

        Raises
        ------
        ValueError
            If *fields* names anything besides ``approved`` / ``blocked``.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

        def _op() -> Optional[Profile]:
            response = (
                self.supabase.table(self.TABLE)
                .update(fields)
                .eq("id", profile_id)
                .execute()
            )
            return Profile(**response.data[0]) if response.data else None

        return self._execute(_op, operation_name="update (profiles)")

    def list_where(
        self,
        *,
        approved: Optional[bool] = None,
        blocked: Optional[bool] = None,
    ) -> list[Profile]:
        """List profiles filtered on the approval / block flags."""
        def _op() -> list[Profile]:
            query = self.supabase.table(self.TABLE).select("*")
            if approved is not None:
                query = query.eq("approved", approved)
            if blocked is not None:
                query = query.eq("blocked", blocked)
            response = query.execute()
            return [Profile(**row) for row in response.data or []]

        return self._execute(_op, operation_name="list_where (profiles)")

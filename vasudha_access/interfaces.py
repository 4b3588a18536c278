"""
Service-Client Interfaces.

Structural types for the two external collaborators.  Workflows depend
on these Protocols only, so the Supabase adapters can be swapped for
in-memory fakes in tests.
"""

from __future__ import annotations

from typing import Optional, Protocol

from vasudha_access.models.auth_models import IdentityCreation, SessionInfo
from vasudha_access.models.profile import Profile


class IdentityProvider(Protocol):
    """Client-side identity capabilities (publishable key)."""

    def create_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> IdentityCreation: ...  # noqa: E704

    def authenticate(self, email: str, password: str) -> SessionInfo: ...  # noqa: E704

    def get_session(self) -> Optional[SessionInfo]: ...  # noqa: E704

    def clear_pending_profile(self) -> None: ...  # noqa: E704

    def sign_out(self) -> None: ...  # noqa: E704


class AdminIdentityProvider(Protocol):
    """Elevated identity capabilities, available server-side only."""

    def create_confirmed_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> IdentityCreation: ...  # noqa: E704

    def delete_identity(self, user_id: str) -> None: ...  # noqa: E704


class ProfileStore(Protocol):
    """The keyed ``profiles`` table."""

    def insert(self, profile: Profile) -> Profile: ...  # noqa: E704

    def fetch_by_id(self, profile_id: str) -> Optional[Profile]: ...  # noqa: E704

    def username_exists(self, username: str) -> bool: ...  # noqa: E704

    def update(self, profile_id: str, fields: dict[str, object]) -> Optional[Profile]: ...  # noqa: E704

    def list_where(
        self,
        *,
        approved: Optional[bool] = None,
        blocked: Optional[bool] = None,
    ) -> list[Profile]: ...  # noqa: E704

"""
Session Authorization.

The one predicate shared by login and the page guard: a session is
authorized if and only if its user has a profile, the profile is not
blocked, and it is approved.  Blocked is checked first, so a blocked
profile is denied whatever its approval flag says.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from vasudha_access.config import AppConfig
from vasudha_access.errors import AccessError, AuthorizationError
from vasudha_access.interfaces import ProfileStore
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.enums import DenialReason
from vasudha_access.models.profile import Profile
from vasudha_access.services.base_service import BaseService


class SessionAuthorizer(BaseService):
    """Re-fetches the profile for a user and applies the approval gate."""

    def __init__(
        self,
        profiles: ProfileStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._profiles = profiles
        self._config = config

    def authorize(
        self,
        user_id: str,
        *,
        on_missing: Optional[Callable[[], Optional[Profile]]] = None,
    ) -> Profile:
        """Return the user's profile if the session may proceed.

        Parameters
        ----------
        user_id:
            Provider user id of the session.
        on_missing:
            Called when no profile row exists; may create and return one.
            Login uses it to finish registrations that waited for email
            confirmation.

        Raises
        ------
        AuthorizationError
            ``no_profile`` when the row is absent or cannot be read,
            ``blocked`` or ``pending_approval`` otherwise.
        """
        profile = self.fetch_profile(user_id)
        if profile is None and on_missing is not None:
            profile = on_missing()
        if profile is None:
            raise AuthorizationError(
                "No registration data found for this account. Please register first.",
                reason=DenialReason.NO_PROFILE,
            )
        self.check_standing(profile)
        return profile

    def fetch_profile(self, user_id: str) -> Optional[Profile]:
        """Fetch the profile; a failed read is a denial, not a pass."""
        try:
            return self._profiles.fetch_by_id(user_id)
        except AccessError as exc:
            raise AuthorizationError(
                "Your account could not be verified. Please try again later.",
                reason=DenialReason.NO_PROFILE,
                original_error=exc,
            ) from exc

    @staticmethod
    def check_standing(profile: Profile) -> None:
        if profile.blocked:
            raise AuthorizationError(
                "Your account has been blocked. Contact an administrator.",
                reason=DenialReason.BLOCKED,
            )
        if profile.approved is not True:
            raise AuthorizationError(
                "Your account is awaiting administrator approval.",
                reason=DenialReason.PENDING_APPROVAL,
            )

    def check_role(self, profile: Profile, required_roles: Iterable[str]) -> None:
        """Raise ``role_mismatch`` unless the profile holds a required role."""
        allowed = set(required_roles)
        if profile.role in allowed or self.effective_role(profile.role) in allowed:
            return
        raise AuthorizationError(
            "You do not have permission to access this page.",
            reason=DenialReason.ROLE_MISMATCH,
        )

    def effective_role(self, role: Optional[str]) -> str:
        """Roles without a landing page behave as the default role."""
        if role and role in self._config.ROLE_DESTINATIONS:
            return role
        return self._config.DEFAULT_ROLE

    def destination_for(self, role: Optional[str]) -> str:
        return self._config.ROLE_DESTINATIONS[self.effective_role(role)]

"""
Profile Provisioning Service.

Completes registrations that were held for email confirmation.  At
sign-up time there was no usable user id, so the candidate fields were
stored in the identity metadata under ``pending_profile``; on the first
successful login with no profile row, this service writes the row.

Security: identity metadata is user-controlled.  The role and username
it carries are re-checked against the admission rules, and the
approval flag always comes from configuration.  Once the row is
written the marker is cleared, so a profile removed later is never
recreated from it.
"""

from __future__ import annotations

from typing import Optional

from vasudha_access.config import AppConfig
from vasudha_access.errors import AccessError, ConflictError
from vasudha_access.interfaces import IdentityProvider, ProfileStore
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.auth_models import PENDING_PROFILE_KEY, SessionInfo
from vasudha_access.models.profile import Profile
from vasudha_access.services.admission import AdmissionPolicy
from vasudha_access.services.base_service import BaseService
from vasudha_access.utils.audit import log_audit_event


class ProfileProvisioningService(BaseService):
    """Just-in-time creation of deferred profiles."""

    def __init__(
        self,
        identity: IdentityProvider,
        profiles: ProfileStore,
        admission: AdmissionPolicy,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._identity = identity
        self._profiles = profiles
        self._admission = admission
        self._config = config

    def complete_pending(self, session: SessionInfo) -> Optional[Profile]:
        """Create the profile described by the session's metadata.

        Returns ``None`` when there is nothing to complete or the stored
        fields fail the admission rules; the caller then denies access.
        """
        pending = session.metadata.get(PENDING_PROFILE_KEY)
        if not isinstance(pending, dict) or not session.user_id:
            return None

        try:
            profile = self._build_profile(session, pending)
            created = self._profiles.insert(profile)
        except ConflictError as exc:
            # Another login completed it first, or the username was taken meanwhile.
            self._logger.warning(
                "Deferred profile for %s hit a conflict; re-reading. Error: %s",
                session.user_id,
                exc.message,
                extra={"event": "JIT_CONFLICT"},
            )
            try:
                existing = self._profiles.fetch_by_id(session.user_id)
            except AccessError:
                return None
            if existing is not None:
                self._identity.clear_pending_profile()
            return existing
        except AccessError as exc:
            self._log_failure("JIT_REJECTED", exc, user_id=session.user_id)
            return None

        self._identity.clear_pending_profile()

        log_audit_event(
            logger=self._logger,
            action="JIT_CREATE",
            entity_type="Profile",
            entity_id=created.id,
            user_id=created.id,
            details={
                "email": created.email,
                "role": created.role,
                "approved": created.approved,
            },
        )
        return created

    def _build_profile(self, session: SessionInfo, pending: dict[str, object]) -> Profile:
        role = str(pending.get("role") or self._config.DEFAULT_ROLE).lower()
        username = _optional_str(pending.get("username"))
        phone = _optional_str(pending.get("phone"))

        self._admission.check_role(role)
        if username:
            self._admission.check_username(username)
        self._admission.check_phone(role, phone)

        full_name = _optional_str(pending.get("full_name")) or (session.email or "").split("@")[0]
        return Profile(
            id=str(session.user_id),
            full_name=full_name,
            username=username,
            email=session.email,
            phone=phone,
            role=role,
            approved=self._config.approved_by_default,
            blocked=False,
        )


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None

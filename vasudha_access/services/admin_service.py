"""
Administration Service.

Approval-gate management: list profiles awaiting approval and flip the
``approved`` / ``blocked`` flags.  These toggles are the only writes to
an existing profile anywhere in the system.

The acting administrator is taken from the current session and must
itself pass the authorization gate with the ``admin`` role.  Every
change is audited.
"""

from __future__ import annotations

from typing import Optional

from vasudha_access.errors import (
    AccessError,
    AuthError,
    AuthorizationError,
    ValidationError,
)
from vasudha_access.interfaces import IdentityProvider, ProfileStore
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.auth_models import AdminActionResult
from vasudha_access.models.enums import DenialReason, UserRole
from vasudha_access.models.profile import Profile
from vasudha_access.services.authorization import SessionAuthorizer
from vasudha_access.services.base_service import BaseService
from vasudha_access.utils.audit import log_audit_event

_SIGN_OUT_REASONS = frozenset(
    {DenialReason.NO_PROFILE, DenialReason.BLOCKED, DenialReason.PENDING_APPROVAL}
)


class AdminService(BaseService):
    """Service layer for administrator approval and block toggles."""

    def __init__(
        self,
        identity: IdentityProvider,
        profiles: ProfileStore,
        authorizer: SessionAuthorizer,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._identity = identity
        self._profiles = profiles
        self._authorizer = authorizer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_pending(self) -> AdminActionResult:
        """Profiles that are neither approved nor blocked."""
        try:
            self._require_admin()
            pending = self._profiles.list_where(approved=False, blocked=False)
        except AccessError as exc:
            return self._failure("ADMIN_LIST_FAILED", exc)

        return AdminActionResult(
            success=True,
            message=f"{len(pending)} account(s) awaiting approval.",
            profiles=pending,
        )

    def approve(self, profile_id: str) -> AdminActionResult:
        return self._toggle(profile_id, "APPROVE", {"approved": True}, "Account approved.")

    def reject(self, profile_id: str) -> AdminActionResult:
        """Withdraw approval; the user is held at the gate again."""
        return self._toggle(profile_id, "REJECT", {"approved": False}, "Approval withdrawn.")

    def block(self, profile_id: str) -> AdminActionResult:
        return self._toggle(profile_id, "BLOCK", {"blocked": True}, "Account blocked.")

    def unblock(self, profile_id: str) -> AdminActionResult:
        return self._toggle(profile_id, "UNBLOCK", {"blocked": False}, "Account unblocked.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _toggle(
        self,
        profile_id: str,
        action: str,
        fields: dict[str, object],
        message: str,
    ) -> AdminActionResult:
        try:
            # --- 0. RBAC: only an authorized admin ---
            admin = self._require_admin()

            # --- 1. An admin cannot lock themselves out ---
            if admin.id == profile_id and action in ("BLOCK", "REJECT"):
                raise ValidationError("You cannot block or unapprove your own account.")

            # --- 2. Verify the profile exists ---
            before = self._profiles.fetch_by_id(profile_id)
            if before is None:
                raise ValidationError("Profile not found.")

            # --- 3. Apply the toggle ---
            updated = self._profiles.update(profile_id, fields)
            if updated is None:
                raise ValidationError("Profile not found.")

        except AccessError as exc:
            return self._failure(f"{action}_FAILED", exc, profile_id=profile_id)

        details: dict[str, str | int | float | bool | None] = {
            "email": updated.email,
            "old_approved": before.approved,
            "old_blocked": before.blocked,
            "new_approved": updated.approved,
            "new_blocked": updated.blocked,
        }
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type="Profile",
            entity_id=profile_id,
            user_id=admin.id,
            details=details,
        )
        return AdminActionResult(success=True, message=message, profile=updated)

    def _require_admin(self) -> Profile:
        session = self._identity.get_session()
        if session is None or not session.user_id:
            raise AuthError("Please sign in to continue.")
        profile = self._authorizer.authorize(session.user_id)
        self._authorizer.check_role(profile, [UserRole.ADMIN.value])
        return profile

    def _failure(
        self,
        event: str,
        exc: AccessError,
        profile_id: Optional[str] = None,
    ) -> AdminActionResult:
        reason = exc.reason if isinstance(exc, AuthorizationError) else None
        self._log_failure(
            event,
            exc,
            profile_id=profile_id,
            denial_reason=str(reason) if reason else None,
        )
        if reason in _SIGN_OUT_REASONS:
            # Only a role mismatch keeps the session.
            self._identity.sign_out()
        return AdminActionResult(
            success=False,
            error_code=exc.kind,
            error_message=exc.message,
        )

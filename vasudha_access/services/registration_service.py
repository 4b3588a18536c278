"""
Registration Service.

Turns a candidate account into an identity plus its dependent profile
row, and reconciles the case where the identity is created but the
profile write fails.

Two paths share the admission rules and the profile shape:

- **client path** (publishable key): the identity is created with
  ``sign_up``.  Without administrative privilege a stranded identity
  cannot be deleted, so a failed profile insert is reported as
  ``PartialFailure``.  When the provider holds the identity for email
  confirmation there is no user id to key a profile on; the candidate
  fields travel in the identity metadata and the profile is completed
  at first login (see ``ProfileProvisioningService``).
- **proxy path** (service-role key): the identity is created already
  confirmed and deleted again if the profile insert fails.

Registration never establishes a session.
"""

from __future__ import annotations

from typing import Optional

from vasudha_access.config import AppConfig
from vasudha_access.errors import (
    AccessError,
    ConflictError,
    PartialFailure,
    TransientError,
)
from vasudha_access.interfaces import AdminIdentityProvider, IdentityProvider, ProfileStore
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.auth_models import PENDING_PROFILE_KEY, RegistrationResult
from vasudha_access.models.enums import ApprovalPolicy, ErrorKind, RegistrationOutcome
from vasudha_access.models.profile import Profile
from vasudha_access.models.registration import RegistrationRequest
from vasudha_access.services.admission import AdmissionPolicy
from vasudha_access.services.base_service import BaseService
from vasudha_access.utils.audit import log_audit_event


class RegistrationService(BaseService):
    """Registration workflow.

    Parameters
    ----------
    identity:
        Client-side identity provider.  Also used to drop any session the
        provider opens as a side effect of sign-up.
    profiles:
        The ``profiles`` store.
    admission:
        Admission rule evaluator.
    config:
        Application configuration (approval policy, login path).
    logger:
        Structured logger.
    admin_identity:
        Elevated provider.  When given, the proxy path is used.
    require_terms:
        Whether the terms-acceptance rule applies.
    """

    def __init__(
        self,
        identity: Optional[IdentityProvider],
        profiles: ProfileStore,
        admission: AdmissionPolicy,
        config: AppConfig,
        logger: StructuredLogger,
        admin_identity: Optional[AdminIdentityProvider] = None,
        require_terms: bool = True,
    ) -> None:
        super().__init__(logger)
        if identity is None and admin_identity is None:
            raise ValueError("RegistrationService needs an identity provider")
        self._identity = identity
        self._profiles = profiles
        self._admission = admission
        self._config = config
        self._admin_identity = admin_identity
        self._require_terms = require_terms

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """Run the full registration workflow.

        Returns
        -------
        RegistrationResult
            ``success=True`` with outcome ``registered`` or
            ``pending_confirmation``; otherwise the classified failure.
        """
        email = request.normalized_email
        try:
            role = self._admission.evaluate(request, require_terms=self._require_terms)
            if self._admin_identity is not None:
                return self._register_confirmed(self._admin_identity, request, role)
            if self._identity is None:
                raise TransientError("Registration is not available right now.")
            return self._register_client(self._identity, request, role)

        except AccessError as exc:
            self._log_failure("REGISTER_FAILED", exc, email=email)
            return RegistrationResult(
                success=False,
                error_code=exc.kind,
                error_message=exc.message,
            )

        except Exception as exc:
            self._logger.error(
                "Unexpected registration error for %s: %s", email, exc,
                exc_info=True,
                extra={"event": "REGISTER_FAILED", "error_code": "unknown"},
            )
            return RegistrationResult(
                success=False,
                error_code=ErrorKind.TRANSIENT,
                error_message="Registration could not be completed. Please try again later.",
            )

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _register_client(
        self,
        identity: IdentityProvider,
        request: RegistrationRequest,
        role: str,
    ) -> RegistrationResult:
        email = request.normalized_email

        creation = identity.create_identity(
            email, request.password or "", self._identity_metadata(request, role),
        )

        if creation.requires_confirmation or creation.user_id is None:
            self._logger.info(
                "Registration pending email confirmation: %s", email,
                extra={"event": "REGISTER_PENDING", "email": email},
            )
            return RegistrationResult(
                success=True,
                outcome=RegistrationOutcome.PENDING_CONFIRMATION,
                message=(
                    "Registration submitted. Check your email to confirm your "
                    "account, then sign in to finish registration."
                ),
            )

        profile = self._build_profile(creation.user_id, request, role)
        try:
            self._profiles.insert(profile)
        except AccessError as exc:
            log_audit_event(
                logger=self._logger,
                action="STRANDED_IDENTITY",
                entity_type="Identity",
                entity_id=creation.user_id,
                user_id=creation.user_id,
                details={"email": email, "reason": str(exc.kind)},
            )
            raise PartialFailure(
                "Registered but profile save failed. Contact an administrator.",
                original_error=exc,
            ) from exc
        else:
            # The profile exists now; the marker must not outlive it.
            identity.clear_pending_profile()
        finally:
            # Sign-up may have opened a session; registration must not leave one.
            identity.sign_out()

        return self._registered(profile)

    def _register_confirmed(
        self,
        admin: AdminIdentityProvider,
        request: RegistrationRequest,
        role: str,
    ) -> RegistrationResult:
        email = request.normalized_email
        creation = admin.create_confirmed_identity(
            email, request.password or "", {"full_name": request.full_name},
        )
        user_id = creation.user_id
        if user_id is None:
            raise TransientError("User creation did not return an id.")

        profile = self._build_profile(user_id, request, role)
        try:
            self._profiles.insert(profile)
        except AccessError as insert_exc:
            self._rollback_identity(admin, user_id, email, insert_exc)
            if isinstance(insert_exc, ConflictError):
                raise ConflictError(
                    "Username already taken. Choose another.",
                    original_error=insert_exc,
                ) from insert_exc
            raise TransientError(
                "Failed to save profile. Registration rolled back. "
                "Please try again or contact an administrator.",
                original_error=insert_exc,
            ) from insert_exc

        return self._registered(profile)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _rollback_identity(
        self,
        admin: AdminIdentityProvider,
        user_id: str,
        email: str,
        cause: AccessError,
    ) -> None:
        """Delete the identity whose profile could not be written.

        Raises
        ------
        PartialFailure
            If the delete fails too and the identity is left stranded.
        """
        try:
            admin.delete_identity(user_id)
        except AccessError as rollback_exc:
            self._logger.critical(
                "Rollback of identity %s failed after profile insert error: %s",
                user_id,
                rollback_exc.message,
                extra={"event": "ROLLBACK_FAILED", "email": email},
            )
            raise PartialFailure(
                "Failed to save profile and the account could not be rolled back. "
                "Contact an administrator.",
                original_error=rollback_exc,
            ) from rollback_exc

        log_audit_event(
            logger=self._logger,
            action="ROLLBACK_IDENTITY",
            entity_type="Identity",
            entity_id=user_id,
            user_id=user_id,
            details={"email": email, "reason": str(cause.kind)},
        )

    def _build_profile(self, user_id: str, request: RegistrationRequest, role: str) -> Profile:
        return Profile(
            id=user_id,
            full_name=request.full_name,
            username=request.username,
            email=request.normalized_email,
            phone=request.phone,
            role=role,
            approved=self._config.approved_by_default,
            blocked=False,
        )

    @staticmethod
    def _identity_metadata(request: RegistrationRequest, role: str) -> dict[str, object]:
        return {
            "full_name": request.full_name,
            PENDING_PROFILE_KEY: {
                "full_name": request.full_name,
                "username": request.username,
                "phone": request.phone,
                "role": role,
            },
        }

    def _registered(self, profile: Profile) -> RegistrationResult:
        log_audit_event(
            logger=self._logger,
            action="REGISTER",
            entity_type="Profile",
            entity_id=profile.id,
            user_id=profile.id,
            details={
                "email": profile.email,
                "role": profile.role,
                "approved": profile.approved,
            },
        )

        if self._config.APPROVAL_POLICY == ApprovalPolicy.AUTO:
            message = "Registration successful. You may login now."
        else:
            message = (
                "Registration successful. Your account is awaiting administrator "
                "approval before you can sign in."
            )

        return RegistrationResult(
            success=True,
            outcome=RegistrationOutcome.REGISTERED,
            message=message,
            user_id=profile.id,
            approved=profile.approved,
            redirect_to=self._config.LOGIN_PATH,
        )

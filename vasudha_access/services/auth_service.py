"""
Authentication Service.

Login and logout.  Sits between the presentation layer and the identity
provider / profile store so that a login form stays a thin handler.

Login runs in a strict order and stops at the first failure:

1. validate the identifier (must be an email address)
2. authenticate with the identity provider
3. extract the session's user
4. authorize the session against its profile (shared with the guard)
5. resolve the role's landing page

Once step 2 has succeeded, every failure signs the session out again,
so no session is ever left active for an identity that was refused.
All methods return ``LoginResult``; the caller never sees raw
exceptions.
"""

from __future__ import annotations

from vasudha_access.config import AppConfig
from vasudha_access.errors import (
    AccessError,
    AuthError,
    AuthorizationError,
    ValidationError,
)
from vasudha_access.interfaces import IdentityProvider
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.auth_models import LoginResult, SessionInfo
from vasudha_access.models.enums import ErrorKind
from vasudha_access.models.profile import Profile
from vasudha_access.services.authorization import SessionAuthorizer
from vasudha_access.services.base_service import BaseService
from vasudha_access.services.provisioning import ProfileProvisioningService


class AuthService(BaseService):
    """Login workflow.

    Parameters
    ----------
    identity:
        Client-side identity provider holding the session.
    authorizer:
        Shared approval-gate predicate.
    provisioning:
        Completes registrations deferred by email confirmation.
    config:
        Application configuration.
    logger:
        Structured logger.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        authorizer: SessionAuthorizer,
        provisioning: ProfileProvisioningService,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._identity = identity
        self._authorizer = authorizer
        self._provisioning = provisioning
        self._config = config

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalise an email address: strip whitespace and lowercase."""
        return email.strip().lower()

    # ==================================================================
    # Login
    # ==================================================================

    def login(self, identifier: str, password: str) -> LoginResult:
        """Authenticate and authorize a user.

        Parameters
        ----------
        identifier:
            The email address typed by the user.  Usernames are refused:
            identities are keyed by email only.
        password:
            The raw password.

        Returns
        -------
        LoginResult
            On success ``role`` and ``redirect_to`` for role-based
            navigation; otherwise the classified failure.
        """
        email = self.normalize_email(identifier or "")

        try:
            self._validate_credentials(email, password)
        except ValidationError as exc:
            return self._failure(exc, email, signed_out=False)

        authenticated = False
        try:
            session = self._identity.authenticate(email, password)
            authenticated = True
            profile = self._authorize(session)

        except AccessError as exc:
            signed_out = self._end_session() if authenticated else False
            return self._failure(exc, email, signed_out=signed_out)

        except Exception as exc:
            signed_out = self._end_session() if authenticated else False
            self._logger.error(
                "Unexpected login error for %s: %s", email, exc,
                exc_info=True,
                extra={"event": "LOGIN_FAILED", "error_code": "unknown"},
            )
            return LoginResult(
                success=False,
                error_code=ErrorKind.TRANSIENT,
                error_message="An unexpected error occurred. Please try again later.",
                signed_out=signed_out,
            )

        destination = self._authorizer.destination_for(profile.role)
        self._logger.info(
            "User authenticated: %s (role: %s)",
            profile.full_name,
            profile.role,
            extra={"event": "LOGIN", "email": email, "user_id": profile.id},
        )
        return LoginResult(
            success=True,
            message="Login successful. Redirecting...",
            user_id=profile.id,
            role=profile.role,
            redirect_to=destination,
            profile=profile,
        )

    # ==================================================================
    # Logout
    # ==================================================================

    def logout(self) -> None:
        """End the current session."""
        self._identity.sign_out()
        self._logger.info("User logged out.", extra={"event": "LOGOUT"})

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_credentials(email: str, password: str) -> None:
        if not email or not password:
            raise ValidationError("Enter email and password.")
        if "@" not in email:
            raise ValidationError(
                "Please sign in with your email address. Usernames are not supported."
            )

    def _authorize(self, session: SessionInfo) -> Profile:
        if not session.user_id:
            raise AuthError("No user session obtained. Please try again.")
        return self._authorizer.authorize(
            session.user_id,
            on_missing=lambda: self._provisioning.complete_pending(session),
        )

    def _end_session(self) -> bool:
        self._identity.sign_out()
        return True

    def _failure(self, exc: AccessError, email: str, *, signed_out: bool) -> LoginResult:
        reason = exc.reason if isinstance(exc, AuthorizationError) else None
        self._log_failure(
            "LOGIN_DENIED" if reason is not None else "LOGIN_FAILED",
            exc,
            email=email,
            denial_reason=str(reason) if reason else None,
        )
        return LoginResult(
            success=False,
            error_code=exc.kind,
            error_message=exc.message,
            denial_reason=reason,
            signed_out=signed_out,
        )

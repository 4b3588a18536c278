"""
Admission Rules.

The ordered checks a candidate account must pass before any identity is
created.  Rules run in a fixed order and the first failure wins:

1. required fields (first name, well-formed email, password of minimum
   length)                                          -> ValidationError
2. terms accepted                                   -> ValidationError
3. email host not on the disposable-domain denylist -> PolicyError
4. requested role not privileged                    -> PolicyError
5. username (if any) valid                          -> ValidationError
6. phone present for roles that require it          -> ValidationError
7. username (if any) not already taken              -> ConflictError

Rule 7 is the only one that touches the profile store; it runs last so
that a rejected candidate costs no remote call.
"""

from __future__ import annotations

import re
from typing import Optional

from vasudha_access.config import AppConfig
from vasudha_access.errors import ConflictError, PolicyError, ValidationError
from vasudha_access.interfaces import ProfileStore
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.registration import RegistrationRequest
from vasudha_access.services.base_service import BaseService

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

_USERNAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z0-9_.-]+$")


class AdmissionPolicy(BaseService):
    """Evaluates candidate accounts against the admission rules.

    Parameters
    ----------
    config:
        Supplies the denylists, the privileged and phone-required roles,
        and the length minimums.
    profiles:
        Used only for the username-uniqueness rule.
    logger:
        Structured logger.
    """

    def __init__(
        self,
        config: AppConfig,
        profiles: ProfileStore,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._config = config
        self._profiles = profiles

    def evaluate(self, request: RegistrationRequest, *, require_terms: bool = True) -> str:
        """Apply every rule in order.

        Parameters
        ----------
        request:
            The candidate account.
        require_terms:
            ``False`` on the registration proxy, whose body carries no
            terms flag.

        Returns
        -------
        str
            The resolved (lower-cased, defaulted) role.

        Raises
        ------
        ValidationError, PolicyError, ConflictError
            For the first rule that fails.
        """
        self.check_required_fields(request)
        if require_terms:
            self.check_terms(request)
        if self.is_disposable_email(request.normalized_email):
            raise PolicyError(
                "Disposable email addresses are not allowed. Use a permanent email."
            )
        role = request.requested_role(self._config.DEFAULT_ROLE)
        self.check_role(role)
        if request.username:
            self.check_username(request.username)
        self.check_phone(role, request.phone)
        if request.username:
            self.check_username_available(request.username)
        return role

    # ------------------------------------------------------------------
    # Individual rules
    # ------------------------------------------------------------------

    def check_required_fields(self, request: RegistrationRequest) -> None:
        if not request.first_name or not request.email or not request.password:
            raise ValidationError(
                "Missing required fields: first name, email, or password."
            )
        if not _EMAIL_RE.match(request.email):
            raise ValidationError("Please enter a valid email address.")
        if len(request.password) < self._config.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {self._config.MIN_PASSWORD_LENGTH} characters."
            )

    @staticmethod
    def check_terms(request: RegistrationRequest) -> None:
        if not request.accepted_terms:
            raise ValidationError("You must accept the Terms & Conditions to register.")

    def is_disposable_email(self, email: str) -> bool:
        """Substring match of the email host against the denylist."""
        host = email.rpartition("@")[2].lower()
        if not host:
            return False
        return any(
            entry.lower() in host for entry in self._config.DISPOSABLE_EMAIL_DOMAINS
        )

    def check_role(self, role: str) -> None:
        if role.lower() in {r.lower() for r in self._config.PRIVILEGED_ROLES}:
            raise PolicyError(
                f"Registration as {role} is not allowed. "
                "Privileged accounts are provisioned by a site administrator."
            )

    def check_username(self, username: str) -> None:
        if len(username) < self._config.USERNAME_MIN_LENGTH:
            raise ValidationError(
                f"Username must be at least {self._config.USERNAME_MIN_LENGTH} characters."
            )
        if not _USERNAME_RE.match(username):
            raise ValidationError(
                "Username may only contain letters, digits, dots, dashes and underscores."
            )
        lowered = username.lower()
        if any(term.lower() in lowered for term in self._config.BANNED_USERNAME_TERMS):
            raise ValidationError(
                "Username contains disallowed words. Choose a different username."
            )

    def check_phone(self, role: str, phone: Optional[str]) -> None:
        if role in self._config.PHONE_REQUIRED_ROLES and not phone:
            raise ValidationError("Phone number is required for the selected role.")

    def check_username_available(self, username: str) -> None:
        """Rule 7.  A failed lookup propagates as ``TransientError``."""
        if self._profiles.username_exists(username):
            raise ConflictError("Username already taken. Choose another.")

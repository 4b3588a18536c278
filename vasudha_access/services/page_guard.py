"""
Page Guard.

Runs once per protected page load, before the page's own logic is
allowed to touch anything.  Pages declare the roles they require by
registering in a ``PageRegistry``; a page that never registered, or
registered without roles, is unprotected and the guard takes no action.

Usage::

    guard = PageGuard(identity, authorizer, registry, config, logger)

    @guard.protect("/admin/index.html")
    def admin_dashboard(profile: Profile) -> str:
        return f"hello {profile.full_name}"

The blocked / approved checks are the same ``SessionAuthorizer`` that
login uses.  Unlike login, the guard never completes a deferred
registration: a session without a profile is sent to register.
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, Concatenate, Optional, ParamSpec, TypeVar

from vasudha_access.config import AppConfig
from vasudha_access.errors import AccessError, AuthorizationError
from vasudha_access.interfaces import IdentityProvider
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.auth_models import GuardDecision
from vasudha_access.models.enums import DenialReason, ErrorKind
from vasudha_access.models.profile import Profile
from vasudha_access.services.authorization import SessionAuthorizer
from vasudha_access.services.base_service import BaseService

P = ParamSpec("P")
R = TypeVar("R")


class PageAccessDenied(RuntimeError):
    """Raised by a ``protect``-ed handler when the guard refuses the load."""

    def __init__(self, decision: GuardDecision) -> None:
        super().__init__(decision.error_message or "Access denied.")
        self.decision = decision


class PageEntry:
    """Metadata for a single registered page.

    Attributes
    ----------
    path:
        Site-relative path of the page (e.g. ``'/buyer.html'``).
    required_roles:
        Roles allowed to load the page.  Empty means unprotected.
    """

    __slots__ = ("path", "required_roles")

    def __init__(self, path: str, required_roles: frozenset[str]) -> None:
        self.path = path
        self.required_roles = required_roles


class PageRegistry:
    """The page-to-required-roles table queried by the guard."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._entries: dict[str, PageEntry] = {}
        self._logger = logger

    def register(self, path: str, required_roles: frozenset[str] = frozenset()) -> None:
        """Declare the roles *path* requires."""
        if path in self._entries:
            self._logger.warning("Page '%s' already registered; overwriting.", path)
        self._entries[path] = PageEntry(path=path, required_roles=frozenset(required_roles))
        self._logger.debug("Page registered: %s (%s)", path, ", ".join(sorted(required_roles)))

    def required_roles_for(self, path: str) -> frozenset[str]:
        """Roles required by *path*; empty when the page is unprotected."""
        entry = self._entries.get(path)
        return entry.required_roles if entry is not None else frozenset()

    def is_protected(self, path: str) -> bool:
        return bool(self.required_roles_for(path))


def build_default_registry(config: AppConfig, logger: StructuredLogger) -> PageRegistry:
    """Register every role landing page as requiring that role."""
    registry = PageRegistry(logger)
    for role, path in config.ROLE_DESTINATIONS.items():
        registry.register(path, frozenset({role}))
    return registry


class PageGuard(BaseService):
    """Per-page-load session, approval and role check.

    Parameters
    ----------
    identity:
        Client-side identity provider holding the current session.
    authorizer:
        Shared approval-gate predicate.
    registry:
        Page declarations.
    config:
        Application configuration (entry-point paths).
    logger:
        Structured logger.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        authorizer: SessionAuthorizer,
        registry: PageRegistry,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._identity = identity
        self._authorizer = authorizer
        self._registry = registry
        self._config = config

    def check(self, path: str) -> GuardDecision:
        """Decide whether the page at *path* may run.

        Returns
        -------
        GuardDecision
            ``allowed`` with the resolved profile, or the redirect to
            follow.  Sessions are terminated for every denial except a
            role mismatch.
        """
        required_roles = self._registry.required_roles_for(path)
        if not required_roles:
            return GuardDecision(allowed=True)

        try:
            session = self._identity.get_session()
            if session is None:
                return self._deny(
                    ErrorKind.AUTH,
                    "Please sign in to continue.",
                    redirect_to=self._config.LOGIN_PATH,
                )
            if not session.user_id:
                return self._deny(
                    ErrorKind.AUTH,
                    "Please sign in to continue.",
                    redirect_to=self._config.LOGIN_PATH,
                    signed_out=self._end_session(),
                )

            profile = self._authorizer.authorize(session.user_id)

        except AuthorizationError as exc:
            return self._deny_authorization(path, exc)

        except AccessError as exc:
            self._log_failure("GUARD_DENIED", exc, path=path)
            return self._deny(
                exc.kind,
                exc.message,
                redirect_to=self._config.LOGIN_PATH,
                signed_out=self._end_session(),
            )

        except Exception as exc:
            self._logger.error(
                "Unexpected guard error on %s: %s", path, exc,
                exc_info=True,
                extra={"event": "GUARD_DENIED", "path": path},
            )
            return self._deny(
                ErrorKind.TRANSIENT,
                "Your session could not be verified. Please sign in again.",
                redirect_to=self._config.LOGIN_PATH,
                signed_out=self._end_session(),
            )

        try:
            self._authorizer.check_role(profile, required_roles)
        except AuthorizationError as exc:
            # Wrong page for a valid user: keep the session.
            self._log_failure("GUARD_DENIED", exc, path=path, denial_reason=str(exc.reason))
            return self._deny(
                exc.kind,
                exc.message,
                redirect_to=self._authorizer.destination_for(profile.role),
                reason=exc.reason,
                access_denied=True,
            )

        self._logger.debug(
            "Page access granted: %s for %s", path, profile.id,
            extra={"event": "GUARD_ALLOWED", "path": path, "user_id": profile.id},
        )
        return GuardDecision(allowed=True, profile=profile)

    def protect(
        self,
        path: str,
        required_roles: Optional[frozenset[str]] = None,
    ) -> Callable[[Callable[Concatenate[Profile, P], R]], Callable[P, R]]:
        """Return a decorator that gates a page handler behind ``check``.

        The wrapped handler receives the resolved ``Profile`` as its first
        argument.  A refused load raises :class:`PageAccessDenied`
        carrying the decision, so the handler body never runs.

        Passing *required_roles* registers the page.

        Raises
        ------
        ValueError
            If *path* declares no required roles: an unprotected page has
            no profile to hand to the handler.
        """
        if required_roles:
            self._registry.register(path, required_roles)
        if not self._registry.is_protected(path):
            raise ValueError(f"Page '{path}' declares no required roles.")

        def decorator(func: Callable[Concatenate[Profile, P], R]) -> Callable[P, R]:
            @wraps(func)
            def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                decision = self.check(path)
                if not decision.allowed or decision.profile is None:
                    raise PageAccessDenied(decision)
                return func(decision.profile, *args, **kwargs)

            return wrapper

        return decorator

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _deny_authorization(self, path: str, exc: AuthorizationError) -> GuardDecision:
        self._log_failure("GUARD_DENIED", exc, path=path, denial_reason=str(exc.reason))

        redirect_to = (
            self._config.REGISTER_PATH
            if exc.reason is DenialReason.NO_PROFILE
            else self._config.LOGIN_PATH
        )
        return self._deny(
            exc.kind,
            exc.message,
            redirect_to=redirect_to,
            reason=exc.reason,
            signed_out=self._end_session(),
        )

    def _end_session(self) -> bool:
        self._identity.sign_out()
        return True

    @staticmethod
    def _deny(
        error_code: ErrorKind,
        message: str,
        *,
        redirect_to: str,
        reason: Optional[DenialReason] = None,
        access_denied: bool = False,
        signed_out: bool = False,
    ) -> GuardDecision:
        return GuardDecision(
            allowed=False,
            redirect_to=redirect_to,
            error_code=error_code,
            error_message=message,
            denial_reason=reason,
            access_denied=access_denied,
            signed_out=signed_out,
        )

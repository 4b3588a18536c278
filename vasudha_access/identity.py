"""
Supabase Identity Adapters.

Wrap ``supabase.auth`` so that workflow code only ever sees
``SessionInfo`` / ``IdentityCreation`` and classified ``AccessError``
exceptions.  Provider responses come back in several shapes (a session
with or without a user, a user without a session when email
confirmation is pending); this module is the only place that looks at
them.
"""

from __future__ import annotations

from typing import Optional

from vasudha_access.database import DatabaseManager
from vasudha_access.errors import (
    AccessError,
    AuthError,
    TransientError,
    error_for_kind,
    is_network_error,
)
from vasudha_access.logger import StructuredLogger
from vasudha_access.models.auth_models import (
    PENDING_PROFILE_KEY,
    SUPABASE_ERROR_MAP,
    IdentityCreation,
    SessionInfo,
)
from vasudha_access.models.enums import ErrorKind


def classify_provider_error(
    exc: Exception,
    fallback_kind: ErrorKind,
    fallback_message: str,
) -> AccessError:
    """Map a Supabase or network exception onto the error taxonomy.

    Parameters
    ----------
    exc:
        The exception raised by the Supabase client.
    fallback_kind:
        Classification used when no known error code matches.
    fallback_message:
        User-facing text for the fallback classification.
    """
    if isinstance(exc, AccessError):
        return exc

    # DatabaseManager raises RuntimeError when the client is not configured
    if isinstance(exc, RuntimeError):
        return TransientError(
            "The authentication service is unavailable. Please try again later.",
            original_error=exc,
        )

    if is_network_error(exc):
        return TransientError(
            "Cannot reach the server. Check your internet connection.",
            original_error=exc,
        )

    haystack = f"{getattr(exc, 'code', '') or ''} {exc}".lower()
    for code_key, (kind, human_message) in SUPABASE_ERROR_MAP.items():
        if code_key in haystack:
            return error_for_kind(kind, human_message, original_error=exc)

    return error_for_kind(fallback_kind, fallback_message, original_error=exc)


def session_from_supabase(session: object) -> Optional[SessionInfo]:
    """Normalise a Supabase ``Session`` (or ``None``) into ``SessionInfo``."""
    if session is None:
        return None
    user = getattr(session, "user", None)
    return SessionInfo(
        user_id=getattr(user, "id", None) or None,
        email=getattr(user, "email", None),
        metadata=dict(getattr(user, "user_metadata", None) or {}),
    )


class SupabaseIdentityProvider:
    """Client-side identity operations over the anon-key client.

    The underlying client keeps the signed-in session in memory, so
    ``get_session`` and ``sign_out`` act on whatever ``authenticate``
    established.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def create_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> IdentityCreation:
        """Sign up a new identity.

        Supabase returns a user without a session when the project
        requires email confirmation; that user cannot write its own
        profile yet, so it is reported as ``requires_confirmation``.
        """
        try:
            response = self._db.supabase.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": metadata},
            })
        except Exception as exc:
            raise classify_provider_error(
                exc, ErrorKind.TRANSIENT, "Registration failed. Please try again later.",
            ) from exc

        user = getattr(response, "user", None)
        session = getattr(response, "session", None)
        user_id: Optional[str] = getattr(user, "id", None) or None

        if user_id is None or session is None:
            return IdentityCreation(user_id=None, requires_confirmation=True)
        return IdentityCreation(user_id=str(user_id), requires_confirmation=False)

    def authenticate(self, email: str, password: str) -> SessionInfo:
        try:
            response = self._db.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as exc:
            raise classify_provider_error(
                exc, ErrorKind.AUTH, "Incorrect email or password.",
            ) from exc

        session = session_from_supabase(getattr(response, "session", None))
        if session is None:
            raise AuthError("No user session obtained. Please try again.")
        return session

    def get_session(self) -> Optional[SessionInfo]:
        try:
            return session_from_supabase(self._db.supabase.auth.get_session())
        except Exception as exc:
            raise classify_provider_error(
                exc, ErrorKind.TRANSIENT, "Could not read the current session.",
            ) from exc

    def clear_pending_profile(self) -> None:
        """Drop the deferred-registration marker from the signed-in identity.

        Failures are logged, not raised: the profile row already exists
        and the caller has nothing left to roll back.
        """
        try:
            self._db.supabase.auth.update_user({"data": {PENDING_PROFILE_KEY: None}})
        except Exception as exc:
            self._logger.warning(
                "Clearing %s failed: %s", PENDING_PROFILE_KEY, exc,
                extra={"event": "PENDING_CLEAR_FAILED"},
            )

    def sign_out(self) -> None:
        """Revoke the current session.

        Failures are logged, not raised: the caller is already on a
        denial path and the local session is dropped by the client
        regardless.
        """
        try:
            self._db.supabase.auth.sign_out()
        except Exception as exc:
            self._logger.warning(
                "Sign-out failed: %s", exc, extra={"event": "SIGN_OUT_FAILED"},
            )


class SupabaseAdminIdentityProvider:
    """Service-role identity operations for the registration proxy."""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def create_confirmed_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> IdentityCreation:
        try:
            response = self._db.supabase_admin.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": metadata,
            })
        except Exception as exc:
            raise classify_provider_error(
                exc, ErrorKind.TRANSIENT, "Failed to create user. Please try again later.",
            ) from exc

        user = getattr(response, "user", None)
        user_id: Optional[str] = getattr(user, "id", None) or None
        if user_id is None:
            raise TransientError("User creation did not return an id.")
        return IdentityCreation(user_id=str(user_id), requires_confirmation=False)

    def delete_identity(self, user_id: str) -> None:
        try:
            self._db.supabase_admin.auth.admin.delete_user(user_id)
        except Exception as exc:
            raise classify_provider_error(
                exc, ErrorKind.TRANSIENT, "Failed to delete user.",
            ) from exc

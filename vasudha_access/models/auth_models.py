"""
Authentication Pipeline Models.

Pydantic models for the contracts between the workflows, the service
clients and whatever presentation layer renders the outcome.  Every
workflow returns one of these structured results instead of raising or
writing to a UI side channel.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from vasudha_access.models.enums import DenialReason, ErrorKind, RegistrationOutcome
from vasudha_access.models.profile import Profile


# Identity metadata key holding the candidate profile of a registration
# that is waiting for email confirmation.
PENDING_PROFILE_KEY: str = "pending_profile"


# ---------------------------------------------------------------------------
# Normalized identity-provider shapes
# ---------------------------------------------------------------------------

class SessionInfo(BaseModel):
    """The single session shape seen by workflow logic.

    Attributes
    ----------
    user_id:
        Provider user id, ``None`` when the provider returned a session
        without a user.
    email:
        Email address the identity is keyed by.
    metadata:
        Identity ``user_metadata`` (carries ``pending_profile`` for
        registrations that awaited email confirmation).
    """

    user_id: Optional[str] = None
    email: Optional[str] = None
    metadata: dict[str, object] = Field(default_factory=dict)


class IdentityCreation(BaseModel):
    """Result of asking the provider to create an identity."""

    user_id: Optional[str] = None
    requires_confirmation: bool = False


# ---------------------------------------------------------------------------
# Provider error-code mapping
# ---------------------------------------------------------------------------

SUPABASE_ERROR_MAP: dict[str, tuple[ErrorKind, str]] = {
    "invalid_credentials": (
        ErrorKind.AUTH,
        "Incorrect email or password.",
    ),
    "invalid login credentials": (
        ErrorKind.AUTH,
        "Incorrect email or password.",
    ),
    "invalid_grant": (
        ErrorKind.AUTH,
        "Incorrect email or password.",
    ),
    "email_not_confirmed": (
        ErrorKind.AUTH,
        "Please confirm your email address before signing in.",
    ),
    "email not confirmed": (
        ErrorKind.AUTH,
        "Please confirm your email address before signing in.",
    ),
    "user_banned": (
        ErrorKind.AUTH,
        "Your account has been deactivated. Contact an administrator.",
    ),
    "user_already_exists": (
        ErrorKind.CONFLICT,
        "User with this email already exists. Login instead or reset password.",
    ),
    "already registered": (
        ErrorKind.CONFLICT,
        "User with this email already exists. Login instead or reset password.",
    ),
    "already been registered": (
        ErrorKind.CONFLICT,
        "User with this email already exists. Login instead or reset password.",
    ),
    "email_exists": (
        ErrorKind.CONFLICT,
        "User with this email already exists. Login instead or reset password.",
    ),
    "weak_password": (
        ErrorKind.VALIDATION,
        "Password is too weak. Choose a longer or less common password.",
    ),
    "over_request_rate_limit": (
        ErrorKind.TRANSIENT,
        "Too many attempts. Please wait a moment and try again.",
    ),
    "rate limit": (
        ErrorKind.TRANSIENT,
        "Too many attempts. Please wait a moment and try again.",
    ),
}


# ---------------------------------------------------------------------------
# Workflow results
# ---------------------------------------------------------------------------

class RegistrationResult(BaseModel):
    """Outcome of a registration attempt.

    ``success`` is ``True`` for both ``registered`` and
    ``pending_confirmation``; a stranded identity is always reported as
    ``success=False`` with ``error_code=partial_failure``.
    """

    success: bool
    outcome: Optional[RegistrationOutcome] = None
    error_code: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    message: Optional[str] = None
    user_id: Optional[str] = None
    approved: Optional[bool] = None
    redirect_to: Optional[str] = None


class LoginResult(BaseModel):
    """Outcome of a login attempt.

    On success ``role`` and ``redirect_to`` drive role-based navigation.
    On an authorization failure ``denial_reason`` tells which gate closed
    and ``signed_out`` confirms no session was left active.
    """

    success: bool
    error_code: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    denial_reason: Optional[DenialReason] = None
    message: Optional[str] = None
    user_id: Optional[str] = None
    role: Optional[str] = None
    redirect_to: Optional[str] = None
    profile: Optional[Profile] = None
    signed_out: bool = False


class GuardDecision(BaseModel):
    """Verdict of the page guard for one page load."""

    allowed: bool
    redirect_to: Optional[str] = None
    error_code: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    denial_reason: Optional[DenialReason] = None
    access_denied: bool = False
    signed_out: bool = False
    profile: Optional[Profile] = None


class AdminActionResult(BaseModel):
    """Outcome of an administrative action.

    ``profile`` is the row after a toggle; ``profiles`` is filled by
    listings.
    """

    success: bool
    error_code: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    message: Optional[str] = None
    profile: Optional[Profile] = None
    profiles: list[Profile] = Field(default_factory=list)

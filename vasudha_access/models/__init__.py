"""
Data Models Package.

Re-exports the Pydantic models so callers can write
``from vasudha_access.models import Profile, LoginResult``.
"""

from __future__ import annotations

from vasudha_access.models.auth_models import (
    AdminActionResult,
    GuardDecision,
    IdentityCreation,
    LoginResult,
    RegistrationResult,
    SessionInfo,
)
from vasudha_access.models.enums import (
    ApprovalPolicy,
    DenialReason,
    ErrorKind,
    RegistrationOutcome,
    UserRole,
)
from vasudha_access.models.profile import Profile
from vasudha_access.models.registration import RegistrationRequest

__all__ = [
    "AdminActionResult",
    "ApprovalPolicy",
    "DenialReason",
    "ErrorKind",
    "GuardDecision",
    "IdentityCreation",
    "LoginResult",
    "Profile",
    "RegistrationOutcome",
    "RegistrationRequest",
    "RegistrationResult",
    "SessionInfo",
    "UserRole",
]

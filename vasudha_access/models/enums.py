"""
Shared Enumerations.

StrEnum values compare equal to their string equivalents, so
``profile.role == UserRole.ADMIN`` and ``profile.role == "admin"`` agree.
"""

from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    """Roles with a dedicated landing page or admission rule.

    ``Profile.role`` is stored as a plain string: rows carrying a role not
    listed here are still valid and are treated as the default role.
    """

    BUYER = "buyer"
    ADMIN = "admin"
    VERIFIER = "verifier"
    FIELD_USER = "field_user"
    PROJECT_OWNER = "project_owner"


class ApprovalPolicy(StrEnum):
    """Initial ``approved`` value written at registration time."""

    AUTO = "auto"
    MANUAL = "manual"


class ErrorKind(StrEnum):
    """Exhaustive classification of workflow failures."""

    VALIDATION = "validation_error"
    POLICY = "policy_error"
    CONFLICT = "conflict_error"
    AUTH = "auth_error"
    AUTHORIZATION = "authorization_error"
    PARTIAL_FAILURE = "partial_failure"
    TRANSIENT = "transient_error"


class DenialReason(StrEnum):
    """Why an authenticated identity was refused access."""

    NO_PROFILE = "no_profile"
    BLOCKED = "blocked"
    PENDING_APPROVAL = "pending_approval"
    ROLE_MISMATCH = "role_mismatch"


class RegistrationOutcome(StrEnum):
    """Terminal states of a registration attempt that did not fail."""

    REGISTERED = "registered"
    PENDING_CONFIRMATION = "pending_confirmation"

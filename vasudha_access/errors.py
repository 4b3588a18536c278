"""
Workflow Error Taxonomy.

Every failure a workflow step can hit is raised as an ``AccessError``
subclass carrying its ``ErrorKind`` and the HTTP status the registration
proxy answers with.  Workflows catch these at their public boundary and
convert them into result models; nothing here is meant to escape to a
caller as an unhandled fault.
"""

from __future__ import annotations

from typing import Optional

import httpx

from vasudha_access.models.enums import DenialReason, ErrorKind


class AccessError(Exception):
    """Base class for classified workflow failures.

    Parameters
    ----------
    message:
        Short human-readable text, safe to show to the end user.
    original_error:
        The underlying exception, kept for logging only.
    """

    kind: ErrorKind = ErrorKind.TRANSIENT
    status_code: int = 500

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class ValidationError(AccessError):
    """Malformed or missing input the user can correct."""

    kind = ErrorKind.VALIDATION
    status_code = 400


class PolicyError(AccessError):
    """Admission rule violation (disposable email, reserved role)."""

    kind = ErrorKind.POLICY
    status_code = 403


class ConflictError(AccessError):
    """Duplicate username or email."""

    kind = ErrorKind.CONFLICT
    status_code = 409


class AuthError(AccessError):
    """Bad credentials or no session."""

    kind = ErrorKind.AUTH
    status_code = 401


class AuthorizationError(AccessError):
    """Valid identity without the standing to proceed."""

    kind = ErrorKind.AUTHORIZATION
    status_code = 403

    def __init__(
        self,
        message: str,
        reason: DenialReason,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, original_error)
        self.reason: DenialReason = reason


class PartialFailure(AccessError):
    """Identity exists but its profile could not be written."""

    kind = ErrorKind.PARTIAL_FAILURE
    status_code = 500


class TransientError(AccessError):
    """Network or service unavailability.  Never retried automatically."""

    kind = ErrorKind.TRANSIENT
    status_code = 500


def is_network_error(exc: BaseException) -> bool:
    """``True`` for connection-level failures raised by the HTTP stack."""
    return isinstance(exc, (ConnectionError, TimeoutError, httpx.TransportError))


_KIND_TO_ERROR: dict[ErrorKind, type[AccessError]] = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.POLICY: PolicyError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.AUTH: AuthError,
    ErrorKind.PARTIAL_FAILURE: PartialFailure,
    ErrorKind.TRANSIENT: TransientError,
}


def error_for_kind(
    kind: ErrorKind,
    message: str,
    original_error: Optional[Exception] = None,
) -> AccessError:
    """Build the ``AccessError`` subclass registered for *kind*.

    ``AUTHORIZATION`` needs a denial reason and is not constructible here.
    """
    return _KIND_TO_ERROR[kind](message, original_error)


def status_for_kind(kind: ErrorKind) -> int:
    """HTTP status the registration proxy answers with for *kind*."""
    if kind is ErrorKind.AUTHORIZATION:
        return AuthorizationError.status_code
    return _KIND_TO_ERROR.get(kind, TransientError).status_code

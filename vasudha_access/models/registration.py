"""
Registration Request Model.

Candidate account fields as submitted by a registration form or by the
registration proxy body.  Every field is optional at the type level so
that the admission rules, not Pydantic, decide which failure is
reported first.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator


class RegistrationRequest(BaseModel):
    """Raw candidate account, whitespace-trimmed on construction."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    accepted_terms: bool = False

    @field_validator(
        "first_name", "last_name", "email", "username", "phone", "role",
        mode="before",
    )
    @classmethod
    def _strip(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def normalized_email(self) -> str:
        return (self.email or "").lower()

    def requested_role(self, default_role: str) -> str:
        """Lower-cased requested role, falling back to *default_role*."""
        return (self.role or default_role).lower()

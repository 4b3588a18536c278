"""
Profile Model.

The application-owned record extending an identity-provider user with
role, approval and block status.  Rows live in the ``profiles`` table;
``id`` is the provider's user id, never a separate identity space.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Profile(BaseModel):
    """Represents one row of the ``profiles`` table."""

    id: str  # Supabase auth user UUID
    full_name: str
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str
    approved: bool = False
    blocked: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}

    def to_record(self) -> dict[str, object]:
        """Column mapping for an insert; server-side defaults are left out."""
        return self.model_dump(exclude={"created_at"})

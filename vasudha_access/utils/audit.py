"""
Structured Audit Logging Utility.

Every profile state change (creation, approval, block toggles, rollback
of a stranded identity) is logged as a schema-validated JSON object.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from vasudha_access.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

# Kept flat: nested structures do not belong in the audit line.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Validate and emit one audit event.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"REGISTER"``, ``"APPROVE"``,
            ``"BLOCK"``, ``"ROLLBACK_IDENTITY"``).
        entity_type: Type of entity affected (``"Profile"``, ``"Identity"``).
        entity_id: Primary key of the affected entity.
        user_id: ID of the user who performed the action.
        details: Optional additional context (e.g. old/new values).

    Returns:
        The validated event, mainly for tests.
    """
    event = AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info(
        "AUDIT: %s",
        json.dumps(event.model_dump(), default=str),
        extra={"event": "AUDIT", "action": action},
    )
    return event

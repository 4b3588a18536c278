"""Shared utilities for the vasudha_access package."""

from vasudha_access.utils.audit import AuditEvent, log_audit_event

__all__ = [
    "AuditEvent",
    "log_audit_event",
]

"""
Audit Records

Immutable audit entries plus the filter object used by audit queries.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from mosque_directory.core.auth import ActorRole


class AuditActionType(str, enum.Enum):
    """Kinds of state-changing calls recorded in the audit log."""

    INSTITUTION_CREATED = "institution_created"
    INSTITUTION_DELETED = "institution_deleted"
    ADMIN_REGISTERED = "admin_registered"
    ADMIN_APPROVED = "admin_approved"
    ADMIN_REJECTED = "admin_rejected"
    ADMIN_REMOVED = "admin_removed"
    VERIFICATION_CODE_REGENERATED = "verification_code_regenerated"
    ADMIN_ALLOWED_REAPPLY = "admin_allowed_reapply"
    ADMIN_REAPPLICATION_SUBMITTED = "admin_reapplication_submitted"
    ADMIN_CODE_VALIDATED = "admin_code_validated"
    AUDIT_LOGS_PURGED = "audit_logs_purged"
    AUDIT_LOGS_BULK_DELETED = "audit_logs_bulk_deleted"


class AuditOutcome(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class AuditTargetType(str, enum.Enum):
    ADMIN = "admin"
    INSTITUTION = "institution"
    AUDIT_LOG = "audit_log"


@dataclass
class AuditTarget:
    """
    The entity an operation acts on.

    Mutable so that an operation can fill in the name once the entity is
    loaded; the recorder copies it into the immutable entry.
    """

    type: AuditTargetType
    id: UUID | None = None
    name: str | None = None


@dataclass(frozen=True)
class AuditEntry:
    """Immutable record of one state-changing call and its outcome."""

    id: UUID
    action_type: AuditActionType
    actor_id: UUID
    actor_role: ActorRole
    actor_name: str | None
    target_type: AuditTargetType
    target_id: UUID | None
    target_name: str | None
    details: dict[str, Any]
    timestamp: datetime
    outcome: AuditOutcome
    error_code: str | None = None


@dataclass(frozen=True)
class AuditLogFilters:
    """Filters for listing and exporting audit entries. Unset fields match everything."""

    action_type: AuditActionType | None = None
    actor_role: ActorRole | None = None
    outcome: AuditOutcome | None = None
    target_type: AuditTargetType | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None

    def matches(self, entry: AuditEntry) -> bool:
        """Evaluate the filters against an entry in memory."""
        if self.action_type is not None and entry.action_type != self.action_type:
            return False
        if self.actor_role is not None and entry.actor_role != self.actor_role:
            return False
        if self.outcome is not None and entry.outcome != self.outcome:
            return False
        if self.target_type is not None and entry.target_type != self.target_type:
            return False
        if self.date_from is not None and entry.timestamp < self.date_from:
            return False
        if self.date_to is not None and entry.timestamp > self.date_to:
            return False
        if self.search:
            needle = self.search.strip().lower()
            haystack = [entry.actor_name or "", entry.target_name or ""]
            if not any(needle in value.lower() for value in haystack):
                return False
        return True


@dataclass(frozen=True)
class AuditStats:
    """Aggregated audit counts over a time window."""

    total: int
    by_action_type: dict[str, int] = field(default_factory=dict)
    by_outcome: dict[str, int] = field(default_factory=dict)
    by_actor_role: dict[str, int] = field(default_factory=dict)

"""
Audit Log Schemas

Request and response schemas for the audit log endpoints.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mosque_directory.core.auth import ActorRole

from .records import AuditActionType, AuditEntry, AuditOutcome, AuditStats, AuditTargetType
from .service import MIN_JUSTIFICATION_LENGTH


class _JustifiedRequest(BaseModel):
    reason: str = Field(
        ...,
        max_length=1000,
        description=f"Justification, at least {MIN_JUSTIFICATION_LENGTH} characters",
    )

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        return v.strip()


class PurgeRequest(_JustifiedRequest):
    """Delete entries older than a number of days."""

    older_than_days: int = Field(..., le=3650, description="Must be at least 1")


class BulkDeleteRequest(_JustifiedRequest):
    """Delete specific entries by id."""

    ids: list[UUID] = Field(..., max_length=1000)


class MaintenanceResponse(BaseModel):
    success: bool = True
    deleted_count: int
    message: str


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action_type: AuditActionType
    actor_id: UUID
    actor_role: ActorRole
    actor_name: str | None = None
    target_type: AuditTargetType
    target_id: UUID | None = None
    target_name: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    outcome: AuditOutcome
    error_code: str | None = None

    @classmethod
    def from_record(cls, entry: AuditEntry) -> "AuditEntryResponse":
        return cls.model_validate(entry)


class AuditEntryListResponse(BaseModel):
    items: list[AuditEntryResponse]
    total: int
    skip: int
    limit: int


class AuditStatsResponse(BaseModel):
    days: int | None
    total: int
    by_action_type: dict[str, int]
    by_outcome: dict[str, int]
    by_actor_role: dict[str, int]

    @classmethod
    def from_stats(cls, stats: AuditStats, days: int | None) -> "AuditStatsResponse":
        return cls(
            days=days,
            total=stats.total,
            by_action_type=stats.by_action_type,
            by_outcome=stats.by_outcome,
            by_actor_role=stats.by_actor_role,
        )

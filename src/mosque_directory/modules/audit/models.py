"""
Audit Log Models

Append-only table of audit entries. Entries are only ever inserted, or
deleted by the audited purge / bulk-delete maintenance operations.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from mosque_directory.core.auth import ActorRole
from mosque_directory.core.database import Base

from .records import AuditActionType, AuditEntry, AuditOutcome, AuditTargetType


class AuditEntryModel(Base):
    """One audited state-changing call."""

    __tablename__ = "audit_entries"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    action_type: Mapped[AuditActionType] = mapped_column(
        Enum(AuditActionType, name="audit_action_type"), nullable=False
    )

    # Performed by
    actor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    actor_role: Mapped[ActorRole] = mapped_column(
        Enum(ActorRole, name="actor_role"), nullable=False
    )
    actor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Target
    target_type: Mapped[AuditTargetType] = mapped_column(
        Enum(AuditTargetType, name="audit_target_type"), nullable=False
    )
    target_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    target_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    outcome: Mapped[AuditOutcome] = mapped_column(
        Enum(AuditOutcome, name="audit_outcome"), nullable=False
    )
    error_code: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_audit_entries_timestamp_id", "timestamp", "id"),
        Index("ix_audit_entries_action_type", "action_type"),
        Index("ix_audit_entries_target", "target_type", "target_id"),
    )

    def to_record(self) -> AuditEntry:
        return AuditEntry(
            id=self.id,
            action_type=self.action_type,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
            actor_name=self.actor_name,
            target_type=self.target_type,
            target_id=self.target_id,
            target_name=self.target_name,
            details=dict(self.details or {}),
            timestamp=self.timestamp,
            outcome=self.outcome,
            error_code=self.error_code,
        )

    @classmethod
    def from_record(cls, entry: AuditEntry) -> "AuditEntryModel":
        return cls(
            id=entry.id,
            action_type=entry.action_type,
            actor_id=entry.actor_id,
            actor_role=entry.actor_role,
            actor_name=entry.actor_name,
            target_type=entry.target_type,
            target_id=entry.target_id,
            target_name=entry.target_name,
            details=entry.details,
            timestamp=entry.timestamp,
            outcome=entry.outcome,
            error_code=entry.error_code,
        )

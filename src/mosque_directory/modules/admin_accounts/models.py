"""
Admin Account Models

Database model for applicant / administrator accounts. Rows are never
deleted: a removed or banned account stays as the compliance record.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from mosque_directory.modules.shared import BaseModel

from .records import (
    AccountStatus,
    AdminAccount,
    HistoryEntry,
    dump_status_detail,
    parse_status_detail,
)


class AdminAccountModel(BaseModel):
    """
    An applicant's admin account.

    ``status_detail`` stores the status-specific payload tagged by ``status``;
    ``history`` is an append-only list of past episodes.
    """

    __tablename__ = "admin_accounts"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus, name="admin_account_status"),
        nullable=False,
        default=AccountStatus.PENDING,
        index=True,
    )
    status_detail: Mapped[dict] = mapped_column(JSON, nullable=False)

    institution_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("institutions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    rejection_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    can_reapply: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_transition_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_admin_accounts_email_lower", text("lower(email)"), unique=True),
        # At most one approved admin per institution
        Index(
            "ix_admin_accounts_one_approved_per_institution",
            "institution_id",
            unique=True,
            postgresql_where=text("status = 'APPROVED'"),
        ),
    )

    def to_record(self) -> AdminAccount:
        return AdminAccount(
            id=self.id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            detail=parse_status_detail(self.status_detail),
            institution_id=self.institution_id,
            rejection_count=self.rejection_count,
            can_reapply=self.can_reapply,
            banned=self.banned,
            history=tuple(HistoryEntry.model_validate(item) for item in self.history or []),
            created_at=self.created_at,
            last_transition_at=self.last_transition_at,
            version=self.version,
        )

    @staticmethod
    def columns_from_record(account: AdminAccount) -> dict:
        """Column values for inserting or updating from a record."""
        return {
            "name": account.name,
            "email": account.email,
            "phone": account.phone,
            "status": account.status,
            "status_detail": dump_status_detail(account.detail),
            "institution_id": account.institution_id,
            "rejection_count": account.rejection_count,
            "can_reapply": account.can_reapply,
            "banned": account.banned,
            "history": [entry.model_dump(mode="json") for entry in account.history],
            "version": account.version,
            "last_transition_at": account.last_transition_at,
        }

    @classmethod
    def from_record(cls, account: AdminAccount) -> "AdminAccountModel":
        return cls(id=account.id, created_at=account.created_at, **cls.columns_from_record(account))

    def __repr__(self) -> str:
        return f"<AdminAccount(id={self.id}, status={self.status}, version={self.version})>"

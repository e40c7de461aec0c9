"""
Admin Accounts Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .records import AccountStatus, AdminAccount, HistoryEntry, StatusDetail

# ============================================
# Requests
# ============================================


class ApplicantInfo(BaseModel):
    """Request body for POST /applications."""

    institution_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=20)
    verification_code: str = Field(..., min_length=1, max_length=64)
    notes: str | None = Field(None, max_length=1000)


class ReasonRequest(BaseModel):
    """Request body for reject / remove."""

    reason: str = Field(..., min_length=1, max_length=1000)


class GrantReapplyRequest(BaseModel):
    notes: str | None = Field(None, max_length=1000)


class ReapplyRequest(BaseModel):
    """Request body for POST /applications/me/reapply."""

    institution_id: UUID
    verification_code: str = Field(..., min_length=1, max_length=64)
    notes: str | None = Field(None, max_length=1000)


class ValidateCodeRequest(BaseModel):
    verification_code: str = Field(..., min_length=1, max_length=64)


# ============================================
# Responses
# ============================================


class AdminAccountResponse(BaseModel):
    """An admin account with its status-specific detail."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str
    status: AccountStatus
    detail: StatusDetail
    institution_id: UUID | None
    rejection_count: int
    can_reapply: bool
    banned: bool
    history: list[HistoryEntry]
    created_at: datetime
    last_transition_at: datetime

    @classmethod
    def from_record(cls, account: AdminAccount) -> "AdminAccountResponse":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            status=account.status,
            detail=account.detail,
            institution_id=account.institution_id,
            rejection_count=account.rejection_count,
            can_reapply=account.can_reapply,
            banned=account.banned,
            history=list(account.history),
            created_at=account.created_at,
            last_transition_at=account.last_transition_at,
        )


class AdminAccountListItem(BaseModel):
    id: UUID
    name: str
    email: str
    status: AccountStatus
    institution_id: UUID | None
    rejection_count: int
    can_reapply: bool
    banned: bool
    created_at: datetime
    last_transition_at: datetime


class AdminAccountListResponse(BaseModel):
    accounts: list[AdminAccountListItem]
    total: int
    skip: int
    limit: int


class AccountStatusResponse(BaseModel):
    """What an applicant sees about their own account."""

    id: UUID
    status: AccountStatus
    detail: StatusDetail
    institution_id: UUID | None
    rejection_count: int
    can_reapply: bool
    banned: bool
    remaining_attempts: int
    message: str


class DashboardStats(BaseModel):
    accounts_by_status: dict[str, int]
    banned_accounts: int
    reapply_allowed: int
    total_institutions: int
    unclaimed_institutions: int


class InstitutionDeletionResponse(BaseModel):
    institution_id: UUID
    affected_admin_ids: list[UUID]
    message: str

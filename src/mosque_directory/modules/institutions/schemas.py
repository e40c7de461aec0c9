"""
Institution Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .records import Institution


class InstitutionCreate(BaseModel):
    """Request body for POST /institutions."""

    name: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(None, max_length=2000)
    contact_phone: str | None = Field(None, max_length=20)
    contact_email: EmailStr | None = None


class RegenerateCodeRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)
    expiry_days: int | None = Field(None, ge=1, le=365)


class DeleteInstitutionRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class InstitutionResponse(BaseModel):
    """Public view of an institution (no verification code)."""

    id: UUID
    name: str
    location: str
    description: str | None
    contact_phone: str | None
    contact_email: str | None
    has_admin: bool
    created_at: datetime

    @classmethod
    def from_record(cls, institution: Institution) -> "InstitutionResponse":
        return cls(
            id=institution.id,
            name=institution.name,
            location=institution.location,
            description=institution.description,
            contact_phone=institution.contact_phone,
            contact_email=institution.contact_email,
            has_admin=institution.is_claimed,
            created_at=institution.created_at,
        )


class InstitutionAdminView(InstitutionResponse):
    """Super admin view, including the current verification code."""

    admin_id: UUID | None
    verification_code: str
    verification_code_expires_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, institution: Institution) -> "InstitutionAdminView":
        return cls(
            **InstitutionResponse.from_record(institution).model_dump(),
            admin_id=institution.admin_id,
            verification_code=institution.verification_code,
            verification_code_expires_at=institution.verification_code_expires_at,
            updated_at=institution.updated_at,
        )


class InstitutionListResponse(BaseModel):
    institutions: list[InstitutionResponse]
    total: int
    skip: int
    limit: int


class ExpiringCodeItem(BaseModel):
    id: UUID
    name: str
    admin_id: UUID | None
    verification_code_expires_at: datetime
    is_expired: bool
    days_until_expiry: int

    @classmethod
    def from_record(cls, institution: Institution, now: datetime) -> "ExpiringCodeItem":
        remaining = institution.verification_code_expires_at - now
        return cls(
            id=institution.id,
            name=institution.name,
            admin_id=institution.admin_id,
            verification_code_expires_at=institution.verification_code_expires_at,
            is_expired=institution.is_code_expired(now),
            days_until_expiry=max(0, remaining.days),
        )


class CodeRotationResult(BaseModel):
    checked: int
    regenerated: int
    failed: int
    institution_ids: list[UUID]

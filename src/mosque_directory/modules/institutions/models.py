"""
Institution Models

Database model for mosques listed in the directory.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from mosque_directory.modules.shared import BaseModel

from .records import Institution


class InstitutionModel(BaseModel):
    """
    A mosque in the directory.

    ``admin_id`` points at the single approved admin account, if any.
    ``version`` is incremented on every change and checked on write.
    """

    __tablename__ = "institutions"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    verification_code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    verification_code_expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    admin_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, unique=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def to_record(self) -> Institution:
        return Institution(
            id=self.id,
            name=self.name,
            location=self.location,
            verification_code=self.verification_code,
            verification_code_expires_at=self.verification_code_expires_at,
            admin_id=self.admin_id,
            description=self.description,
            contact_phone=self.contact_phone,
            contact_email=self.contact_email,
            created_at=self.created_at,
            updated_at=self.updated_at,
            version=self.version,
        )

    @classmethod
    def from_record(cls, institution: Institution) -> "InstitutionModel":
        return cls(
            id=institution.id,
            name=institution.name,
            location=institution.location,
            verification_code=institution.verification_code,
            verification_code_expires_at=institution.verification_code_expires_at,
            admin_id=institution.admin_id,
            description=institution.description,
            contact_phone=institution.contact_phone,
            contact_email=institution.contact_email,
            created_at=institution.created_at,
            updated_at=institution.updated_at,
            version=institution.version,
        )

    def __repr__(self) -> str:
        return f"<Institution(id={self.id}, name={self.name!r}, admin_id={self.admin_id})>"

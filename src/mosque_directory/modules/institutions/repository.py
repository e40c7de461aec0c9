"""
Institution Repository

Database operations on the institutions table. Functions never commit: the
caller owns the transaction so several writes can be applied atomically.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import InstitutionModel
from .records import Institution


async def get_by_id(db: AsyncSession, id: UUID) -> InstitutionModel | None:
    """Get institution by ID."""
    return await db.get(InstitutionModel, id)


async def create(db: AsyncSession, institution: Institution) -> InstitutionModel:
    row = InstitutionModel.from_record(institution)
    db.add(row)
    await db.flush()
    return row


async def list_institutions(
    db: AsyncSession,
    *,
    search: str | None = None,
    claimed: bool | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[InstitutionModel], int]:
    """
    Get a page of institutions ordered by name.

    Returns:
        Tuple of (institutions, total_count)
    """
    query = select(InstitutionModel)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(InstitutionModel.name.ilike(pattern), InstitutionModel.location.ilike(pattern))
        )
    if claimed is True:
        query = query.where(InstitutionModel.admin_id.is_not(None))
    elif claimed is False:
        query = query.where(InstitutionModel.admin_id.is_(None))

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    query = query.order_by(func.lower(InstitutionModel.name), InstitutionModel.id)
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def list_code_expiring_before(db: AsyncSession, cutoff: datetime) -> list[InstitutionModel]:
    result = await db.execute(
        select(InstitutionModel)
        .where(InstitutionModel.verification_code_expires_at <= cutoff)
        .order_by(InstitutionModel.verification_code_expires_at)
    )
    return list(result.scalars().all())


async def count_institutions(db: AsyncSession) -> tuple[int, int]:
    """Returns (total, unclaimed)."""
    result = await db.execute(
        select(
            func.count(InstitutionModel.id),
            func.count(InstitutionModel.id).filter(InstitutionModel.admin_id.is_(None)),
        )
    )
    total, unclaimed = result.one()
    return total or 0, unclaimed or 0


async def get_version_for_update(db: AsyncSession, id: UUID) -> int | None:
    """Lock the institution row and return its current version."""
    result = await db.execute(
        select(InstitutionModel.version).where(InstitutionModel.id == id).with_for_update()
    )
    return result.scalar_one_or_none()


async def update_if_version(
    db: AsyncSession,
    institution: Institution,
    expected_version: int,
) -> bool:
    """
    Write an institution only if it is still at ``expected_version``.

    Returns:
        True if the row was updated
    """
    result = await db.execute(
        update(InstitutionModel)
        .where(InstitutionModel.id == institution.id, InstitutionModel.version == expected_version)
        .values(
            name=institution.name,
            location=institution.location,
            description=institution.description,
            contact_phone=institution.contact_phone,
            contact_email=institution.contact_email,
            verification_code=institution.verification_code,
            verification_code_expires_at=institution.verification_code_expires_at,
            admin_id=institution.admin_id,
            updated_at=institution.updated_at,
            version=institution.version,
        )
    )
    return result.rowcount == 1


async def delete_if_version(db: AsyncSession, id: UUID, expected_version: int) -> bool:
    result = await db.execute(
        delete(InstitutionModel).where(
            InstitutionModel.id == id, InstitutionModel.version == expected_version
        )
    )
    return result.rowcount == 1

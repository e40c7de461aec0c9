"""
Admin Accounts Repository

Database operations on the admin_accounts table. Functions never commit:
the caller owns the transaction.

Design Principles:
- All queries are parameterized
- Status changes are compare-and-swap writes on the ``version`` column
- Rows are never deleted
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AdminAccountModel
from .records import AccountStatus, AdminAccount


async def get_by_id(db: AsyncSession, id: UUID) -> AdminAccountModel | None:
    """Get account by ID."""
    return await db.get(AdminAccountModel, id)


async def get_by_email(db: AsyncSession, email: str) -> AdminAccountModel | None:
    """Get account by email (case-insensitive)."""
    result = await db.execute(
        select(AdminAccountModel).where(
            func.lower(AdminAccountModel.email) == email.strip().lower()
        )
    )
    return result.scalar_one_or_none()


async def get_by_phone(db: AsyncSession, phone: str) -> AdminAccountModel | None:
    result = await db.execute(
        select(AdminAccountModel).where(AdminAccountModel.phone == phone.strip())
    )
    return result.scalar_one_or_none()


async def create(db: AsyncSession, account: AdminAccount) -> AdminAccountModel:
    row = AdminAccountModel.from_record(account)
    db.add(row)
    await db.flush()
    return row


async def list_for_institution(
    db: AsyncSession,
    institution_id: UUID,
    statuses: Iterable[AccountStatus],
) -> list[AdminAccountModel]:
    result = await db.execute(
        select(AdminAccountModel).where(
            AdminAccountModel.institution_id == institution_id,
            AdminAccountModel.status.in_(list(statuses)),
        )
    )
    return list(result.scalars().all())


async def list_accounts(
    db: AsyncSession,
    *,
    status: AccountStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[AdminAccountModel], int]:
    """
    Get a page of accounts, newest first.

    Returns:
        Tuple of (accounts, total_count)
    """
    query = select(AdminAccountModel)

    if status is not None:
        query = query.where(AdminAccountModel.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(AdminAccountModel.name.ilike(pattern), AdminAccountModel.email.ilike(pattern))
        )

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    query = query.order_by(AdminAccountModel.created_at.desc(), AdminAccountModel.id.desc())
    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def count_by_status(db: AsyncSession) -> dict[str, int]:
    """Account counts for every status (zero-filled)."""
    result = await db.execute(
        select(AdminAccountModel.status, func.count(AdminAccountModel.id)).group_by(
            AdminAccountModel.status
        )
    )
    counts = {status.value: 0 for status in AccountStatus}
    for status, count in result.all():
        counts[status.value] = count
    return counts


async def count_flags(db: AsyncSession) -> tuple[int, int]:
    """Returns (banned, reapply_allowed)."""
    result = await db.execute(
        select(
            func.count(AdminAccountModel.id).filter(AdminAccountModel.banned.is_(True)),
            func.count(AdminAccountModel.id).filter(AdminAccountModel.can_reapply.is_(True)),
        )
    )
    banned, reapply_allowed = result.one()
    return banned or 0, reapply_allowed or 0


async def update_if_version(
    db: AsyncSession,
    account: AdminAccount,
    expected_version: int,
) -> bool:
    """
    Write an account's new state only if it is still at ``expected_version``.

    Returns:
        True if the row was updated
    """
    result = await db.execute(
        update(AdminAccountModel)
        .where(
            AdminAccountModel.id == account.id,
            AdminAccountModel.version == expected_version,
        )
        .values(**AdminAccountModel.columns_from_record(account))
    )
    return result.rowcount == 1

"""
Audit Log Repository

Database operations on the audit_entries table.
"""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, and_, delete, func, or_, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AuditEntryModel
from .records import AuditEntry, AuditLogFilters


def _apply_filters(query: Select, filters: AuditLogFilters) -> Select:
    conditions = []

    if filters.action_type is not None:
        conditions.append(AuditEntryModel.action_type == filters.action_type)
    if filters.actor_role is not None:
        conditions.append(AuditEntryModel.actor_role == filters.actor_role)
    if filters.outcome is not None:
        conditions.append(AuditEntryModel.outcome == filters.outcome)
    if filters.target_type is not None:
        conditions.append(AuditEntryModel.target_type == filters.target_type)
    if filters.date_from is not None:
        conditions.append(AuditEntryModel.timestamp >= filters.date_from)
    if filters.date_to is not None:
        conditions.append(AuditEntryModel.timestamp <= filters.date_to)
    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        conditions.append(
            or_(
                AuditEntryModel.actor_name.ilike(pattern),
                AuditEntryModel.target_name.ilike(pattern),
            )
        )

    if conditions:
        query = query.where(and_(*conditions))
    return query


def _ordered(query: Select, descending: bool) -> Select:
    if descending:
        return query.order_by(AuditEntryModel.timestamp.desc(), AuditEntryModel.id.desc())
    return query.order_by(AuditEntryModel.timestamp.asc(), AuditEntryModel.id.asc())


async def create(db: AsyncSession, entry: AuditEntry) -> AuditEntryModel:
    row = AuditEntryModel.from_record(entry)
    db.add(row)
    await db.commit()
    return row


async def get_by_id(db: AsyncSession, id: UUID) -> AuditEntryModel | None:
    return await db.get(AuditEntryModel, id)


async def list_entries(
    db: AsyncSession,
    filters: AuditLogFilters,
    *,
    skip: int = 0,
    limit: int = 50,
    descending: bool = True,
) -> tuple[list[AuditEntryModel], int]:
    """
    Get a page of audit entries.

    Returns:
        Tuple of (entries, total_count)
    """
    query = _apply_filters(select(AuditEntryModel), filters)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    result = await db.execute(_ordered(query, descending).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def delete_before(db: AsyncSession, cutoff: datetime) -> int:
    result = await db.execute(delete(AuditEntryModel).where(AuditEntryModel.timestamp < cutoff))
    await db.commit()
    return result.rowcount or 0


async def delete_ids(db: AsyncSession, ids: Iterable[UUID]) -> int:
    result = await db.execute(delete(AuditEntryModel).where(AuditEntryModel.id.in_(list(ids))))
    await db.commit()
    return result.rowcount or 0


async def count_grouped(db: AsyncSession, column, since: datetime | None) -> dict[str, int]:
    query = select(column, func.count(AuditEntryModel.id)).group_by(column)
    if since is not None:
        query = query.where(AuditEntryModel.timestamp >= since)
    result = await db.execute(query)
    return {key.value: count for key, count in result.all()}


async def list_entries_before(
    db: AsyncSession,
    filters: AuditLogFilters,
    *,
    before: tuple[datetime, UUID] | None = None,
    limit: int = 500,
) -> list[AuditEntryModel]:
    """Keyset page of entries, newest first, strictly older than ``before``."""
    query = _apply_filters(select(AuditEntryModel), filters)
    if before is not None:
        query = query.where(tuple_(AuditEntryModel.timestamp, AuditEntryModel.id) < tuple_(*before))
    result = await db.execute(_ordered(query, descending=True).limit(limit))
    return list(result.scalars().all())

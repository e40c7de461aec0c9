"""
SQL Lifecycle Store

PostgreSQL implementation of ``LifecycleStore`` on async SQLAlchemy.

Every ``commit`` runs in one transaction. Version checks are conditional
``UPDATE ... WHERE version = :expected`` statements; a zero row count or a
unique-index violation rolls the transaction back and raises
``StoreConflict``.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mosque_directory.modules.audit import repository as audit_repository
from mosque_directory.modules.audit.models import AuditEntryModel
from mosque_directory.modules.audit.records import AuditEntry, AuditLogFilters, AuditStats
from mosque_directory.modules.institutions import repository as institution_repository
from mosque_directory.modules.institutions.records import Institution

from . import repository as account_repository
from .errors import DuplicateAccountError, StoreConflict
from .records import AccountStatus, AdminAccount
from .store import DashboardCounts, LifecycleStore, StoreChange

logger = logging.getLogger(__name__)


class SqlAlchemyLifecycleStore(LifecycleStore):
    """Store backed by the application database; one session per call."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    # Accounts

    async def get_account(self, account_id: UUID) -> AdminAccount | None:
        async with self._session_maker() as db:
            row = await account_repository.get_by_id(db, account_id)
            return row.to_record() if row else None

    async def get_account_by_email(self, email: str) -> AdminAccount | None:
        async with self._session_maker() as db:
            row = await account_repository.get_by_email(db, email)
            return row.to_record() if row else None

    async def get_account_by_phone(self, phone: str) -> AdminAccount | None:
        async with self._session_maker() as db:
            row = await account_repository.get_by_phone(db, phone)
            return row.to_record() if row else None

    async def create_account(self, account: AdminAccount) -> AdminAccount:
        async with self._session_maker() as db:
            if await account_repository.get_by_email(db, account.email):
                raise DuplicateAccountError("email")
            if await account_repository.get_by_phone(db, account.phone):
                raise DuplicateAccountError("phone")
            try:
                await account_repository.create(db, account)
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                logger.warning(f"Duplicate account insert for {account.id}: {e.orig}")
                raise DuplicateAccountError("email or phone") from e
        return account

    async def list_accounts_for_institution(
        self, institution_id: UUID, statuses: Iterable[AccountStatus]
    ) -> list[AdminAccount]:
        async with self._session_maker() as db:
            rows = await account_repository.list_for_institution(db, institution_id, statuses)
            return [row.to_record() for row in rows]

    async def list_accounts(
        self,
        *,
        status: AccountStatus | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[AdminAccount], int]:
        async with self._session_maker() as db:
            rows, total = await account_repository.list_accounts(
                db, status=status, search=search, skip=skip, limit=limit
            )
            return [row.to_record() for row in rows], total

    # Institutions

    async def get_institution(self, institution_id: UUID) -> Institution | None:
        async with self._session_maker() as db:
            row = await institution_repository.get_by_id(db, institution_id)
            return row.to_record() if row else None

    async def create_institution(self, institution: Institution) -> Institution:
        async with self._session_maker() as db:
            await institution_repository.create(db, institution)
            await db.commit()
        return institution

    async def list_institutions(
        self,
        *,
        search: str | None = None,
        claimed: bool | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Institution], int]:
        async with self._session_maker() as db:
            rows, total = await institution_repository.list_institutions(
                db, search=search, claimed=claimed, skip=skip, limit=limit
            )
            return [row.to_record() for row in rows], total

    async def list_institutions_with_code_expiring_before(
        self, cutoff: datetime
    ) -> list[Institution]:
        async with self._session_maker() as db:
            rows = await institution_repository.list_code_expiring_before(db, cutoff)
            return [row.to_record() for row in rows]

    async def get_dashboard_counts(self) -> DashboardCounts:
        async with self._session_maker() as db:
            by_status = await account_repository.count_by_status(db)
            banned, reapply_allowed = await account_repository.count_flags(db)
            total, unclaimed = await institution_repository.count_institutions(db)
        return DashboardCounts(
            accounts_by_status=by_status,
            banned_accounts=banned,
            reapply_allowed=reapply_allowed,
            total_institutions=total,
            unclaimed_institutions=unclaimed,
        )

    # Atomic writes

    async def _apply(self, db: AsyncSession, change: StoreChange) -> None:
        for plan in change.plans:
            if not await account_repository.update_if_version(db, plan.after, plan.expected_version):
                raise StoreConflict(f"Account {plan.before.id} changed concurrently")

        if change.delete_institution_id is not None:
            deleted = await institution_repository.delete_if_version(
                db, change.delete_institution_id, change.expected_institution_version
            )
            if not deleted:
                raise StoreConflict(
                    f"Institution {change.delete_institution_id} changed concurrently"
                )
        elif change.institution is not None:
            institution = change.institution
            if institution.version == change.expected_institution_version:
                current = await institution_repository.get_version_for_update(db, institution.id)
                if current != change.expected_institution_version:
                    raise StoreConflict(f"Institution {institution.id} changed concurrently")
            elif not await institution_repository.update_if_version(
                db, institution, change.expected_institution_version
            ):
                raise StoreConflict(f"Institution {institution.id} changed concurrently")

    async def commit(self, change: StoreChange) -> None:
        async with self._session_maker() as db:
            try:
                async with db.begin():
                    await self._apply(db, change)
            except IntegrityError as e:
                logger.warning(f"Lifecycle commit rejected by constraint: {e.orig}")
                raise StoreConflict("Change violates a uniqueness constraint") from e

    # Audit log

    async def append_audit(self, entry: AuditEntry) -> None:
        async with self._session_maker() as db:
            await audit_repository.create(db, entry)

    async def get_audit_entry(self, entry_id: UUID) -> AuditEntry | None:
        async with self._session_maker() as db:
            row = await audit_repository.get_by_id(db, entry_id)
            return row.to_record() if row else None

    async def list_audit(
        self,
        filters: AuditLogFilters,
        *,
        skip: int = 0,
        limit: int = 50,
        descending: bool = True,
    ) -> tuple[list[AuditEntry], int]:
        async with self._session_maker() as db:
            rows, total = await audit_repository.list_entries(
                db, filters, skip=skip, limit=limit, descending=descending
            )
            return [row.to_record() for row in rows], total

    async def iter_audit(
        self, filters: AuditLogFilters, *, batch_size: int = 500, max_rows: int | None = None
    ) -> AsyncIterator[AuditEntry]:
        emitted = 0
        before: tuple[datetime, UUID] | None = None
        while max_rows is None or emitted < max_rows:
            limit = batch_size if max_rows is None else min(batch_size, max_rows - emitted)
            async with self._session_maker() as db:
                rows = await audit_repository.list_entries_before(
                    db, filters, before=before, limit=limit
                )
                batch = [row.to_record() for row in rows]
            for entry in batch:
                yield entry
            emitted += len(batch)
            if len(batch) < limit:
                break
            before = (batch[-1].timestamp, batch[-1].id)

    async def delete_audit_before(self, cutoff: datetime) -> int:
        async with self._session_maker() as db:
            return await audit_repository.delete_before(db, cutoff)

    async def delete_audit_entries(self, entry_ids: Iterable[UUID]) -> int:
        ids = set(entry_ids)
        if not ids:
            return 0
        async with self._session_maker() as db:
            return await audit_repository.delete_ids(db, ids)

    async def get_audit_stats(self, since: datetime | None = None) -> AuditStats:
        async with self._session_maker() as db:
            by_action = await audit_repository.count_grouped(db, AuditEntryModel.action_type, since)
            by_outcome = await audit_repository.count_grouped(db, AuditEntryModel.outcome, since)
            by_role = await audit_repository.count_grouped(db, AuditEntryModel.actor_role, since)
        return AuditStats(
            total=sum(by_outcome.values()),
            by_action_type=by_action,
            by_outcome=by_outcome,
            by_actor_role=by_role,
        )

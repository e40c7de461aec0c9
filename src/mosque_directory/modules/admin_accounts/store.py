"""
Lifecycle Store

Storage abstraction for institutions, admin accounts and audit entries.

Writes to accounts and institutions go through ``commit``: a single atomic
compare-and-swap over every record a transition touches. Each record carries
a ``version``; a commit whose expected versions no longer match raises
``StoreConflict`` and changes nothing. Audit entries are append-only and are
written separately from state changes.

Two implementations exist:
- ``InMemoryLifecycleStore`` (below): process-local, used by tests and local runs
- ``SqlAlchemyLifecycleStore`` (sql_store.py): PostgreSQL via async SQLAlchemy
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from uuid import UUID

from mosque_directory.modules.audit.records import AuditEntry, AuditLogFilters, AuditStats
from mosque_directory.modules.institutions.records import Institution

from .errors import DuplicateAccountError, StoreConflict
from .lifecycle import TransitionPlan
from .records import AccountStatus, AdminAccount


@dataclass(frozen=True)
class StoreChange:
    """
    Everything one lifecycle operation writes, committed atomically.

    Attributes:
        plans: Account transitions; each is checked against its expected version
        institution: New institution state. A record whose version equals the
            expected version is a check-only guard: the commit fails if the
            institution changed, but nothing is written to it.
        expected_institution_version: Version the institution change was planned against
        delete_institution_id: Institution to delete instead of update
    """

    plans: tuple[TransitionPlan, ...] = ()
    institution: Institution | None = None
    expected_institution_version: int | None = None
    delete_institution_id: UUID | None = None


@dataclass(frozen=True)
class DashboardCounts:
    accounts_by_status: dict[str, int] = field(default_factory=dict)
    banned_accounts: int = 0
    reapply_allowed: int = 0
    total_institutions: int = 0
    unclaimed_institutions: int = 0


class LifecycleStore(ABC):
    """Abstract storage for the admin-account lifecycle."""

    # Accounts

    @abstractmethod
    async def get_account(self, account_id: UUID) -> AdminAccount | None: ...

    @abstractmethod
    async def get_account_by_email(self, email: str) -> AdminAccount | None: ...

    @abstractmethod
    async def get_account_by_phone(self, phone: str) -> AdminAccount | None: ...

    @abstractmethod
    async def create_account(self, account: AdminAccount) -> AdminAccount:
        """Insert a new account. Raises DuplicateAccountError on email/phone reuse."""

    @abstractmethod
    async def list_accounts_for_institution(
        self, institution_id: UUID, statuses: Iterable[AccountStatus]
    ) -> list[AdminAccount]: ...

    @abstractmethod
    async def list_accounts(
        self,
        *,
        status: AccountStatus | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[AdminAccount], int]:
        """Newest accounts first. Returns (page, total matching)."""

    # Institutions

    @abstractmethod
    async def get_institution(self, institution_id: UUID) -> Institution | None: ...

    @abstractmethod
    async def create_institution(self, institution: Institution) -> Institution: ...

    @abstractmethod
    async def list_institutions(
        self,
        *,
        search: str | None = None,
        claimed: bool | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Institution], int]:
        """Institutions ordered by name. Returns (page, total matching)."""

    @abstractmethod
    async def list_institutions_with_code_expiring_before(
        self, cutoff: datetime
    ) -> list[Institution]: ...

    @abstractmethod
    async def get_dashboard_counts(self) -> DashboardCounts: ...

    # Atomic writes

    @abstractmethod
    async def commit(self, change: StoreChange) -> None:
        """
        Apply a change atomically.

        Raises:
            StoreConflict: If any expected version does not match, or the change
                would leave two approved admins on one institution
        """

    # Audit log

    @abstractmethod
    async def append_audit(self, entry: AuditEntry) -> None: ...

    @abstractmethod
    async def get_audit_entry(self, entry_id: UUID) -> AuditEntry | None: ...

    @abstractmethod
    async def list_audit(
        self,
        filters: AuditLogFilters,
        *,
        skip: int = 0,
        limit: int = 50,
        descending: bool = True,
    ) -> tuple[list[AuditEntry], int]:
        """Entries ordered by (timestamp, id). Returns (page, total matching)."""

    @abstractmethod
    def iter_audit(
        self, filters: AuditLogFilters, *, batch_size: int = 500, max_rows: int | None = None
    ) -> AsyncIterator[AuditEntry]:
        """Stream matching entries, newest first."""

    @abstractmethod
    async def delete_audit_before(self, cutoff: datetime) -> int:
        """Delete entries older than ``cutoff``. Returns the number deleted."""

    @abstractmethod
    async def delete_audit_entries(self, entry_ids: Iterable[UUID]) -> int:
        """Delete the given entries. Returns the number deleted."""

    @abstractmethod
    async def get_audit_stats(self, since: datetime | None = None) -> AuditStats: ...


def _page(items: list, skip: int, limit: int) -> list:
    return items[skip : skip + limit]


class InMemoryLifecycleStore(LifecycleStore):
    """
    Process-local store.

    Records are immutable, so reads hand them out directly. All writes run
    under one ``asyncio.Lock``, which makes each ``commit`` an atomic
    compare-and-swap across the records it touches.
    """

    def __init__(self) -> None:
        self._accounts: dict[UUID, AdminAccount] = {}
        self._institutions: dict[UUID, Institution] = {}
        self._audit: dict[UUID, AuditEntry] = {}
        self._write_lock = asyncio.Lock()

    # Accounts

    async def get_account(self, account_id: UUID) -> AdminAccount | None:
        return self._accounts.get(account_id)

    async def get_account_by_email(self, email: str) -> AdminAccount | None:
        email = email.strip().lower()
        return next((a for a in self._accounts.values() if a.email.lower() == email), None)

    async def get_account_by_phone(self, phone: str) -> AdminAccount | None:
        phone = phone.strip()
        return next((a for a in self._accounts.values() if a.phone == phone), None)

    async def create_account(self, account: AdminAccount) -> AdminAccount:
        async with self._write_lock:
            if await self.get_account_by_email(account.email):
                raise DuplicateAccountError("email")
            if await self.get_account_by_phone(account.phone):
                raise DuplicateAccountError("phone")
            self._accounts[account.id] = account
        return account

    async def list_accounts_for_institution(
        self, institution_id: UUID, statuses: Iterable[AccountStatus]
    ) -> list[AdminAccount]:
        wanted = set(statuses)
        return [
            a
            for a in self._accounts.values()
            if a.institution_id == institution_id and a.status in wanted
        ]

    async def list_accounts(
        self,
        *,
        status: AccountStatus | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[AdminAccount], int]:
        accounts = list(self._accounts.values())
        if status is not None:
            accounts = [a for a in accounts if a.status == status]
        if search:
            needle = search.strip().lower()
            accounts = [
                a for a in accounts if needle in a.name.lower() or needle in a.email.lower()
            ]
        accounts.sort(key=lambda a: (a.created_at, a.id), reverse=True)
        return _page(accounts, skip, limit), len(accounts)

    # Institutions

    async def get_institution(self, institution_id: UUID) -> Institution | None:
        return self._institutions.get(institution_id)

    async def create_institution(self, institution: Institution) -> Institution:
        async with self._write_lock:
            self._institutions[institution.id] = institution
        return institution

    async def list_institutions(
        self,
        *,
        search: str | None = None,
        claimed: bool | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Institution], int]:
        institutions = list(self._institutions.values())
        if search:
            needle = search.strip().lower()
            institutions = [
                i
                for i in institutions
                if needle in i.name.lower() or needle in i.location.lower()
            ]
        if claimed is not None:
            institutions = [i for i in institutions if i.is_claimed == claimed]
        institutions.sort(key=lambda i: (i.name.lower(), i.id))
        return _page(institutions, skip, limit), len(institutions)

    async def list_institutions_with_code_expiring_before(
        self, cutoff: datetime
    ) -> list[Institution]:
        expiring = [
            i for i in self._institutions.values() if i.verification_code_expires_at <= cutoff
        ]
        return sorted(expiring, key=lambda i: i.verification_code_expires_at)

    async def get_dashboard_counts(self) -> DashboardCounts:
        by_status = {s.value: 0 for s in AccountStatus}
        for account in self._accounts.values():
            by_status[account.status.value] += 1
        return DashboardCounts(
            accounts_by_status=by_status,
            banned_accounts=sum(1 for a in self._accounts.values() if a.banned),
            reapply_allowed=sum(1 for a in self._accounts.values() if a.can_reapply),
            total_institutions=len(self._institutions),
            unclaimed_institutions=sum(1 for i in self._institutions.values() if not i.is_claimed),
        )

    # Atomic writes

    def _check_versions(self, change: StoreChange) -> None:
        for plan in change.plans:
            current = self._accounts.get(plan.before.id)
            if current is None or current.version != plan.expected_version:
                raise StoreConflict(f"Account {plan.before.id} changed concurrently")

        institution_id = change.delete_institution_id or (
            change.institution.id if change.institution else None
        )
        if institution_id is not None:
            current_institution = self._institutions.get(institution_id)
            if (
                current_institution is None
                or current_institution.version != change.expected_institution_version
            ):
                raise StoreConflict(f"Institution {institution_id} changed concurrently")

    def _check_single_approved_admin(self, change: StoreChange) -> None:
        updated = {plan.after.id: plan.after for plan in change.plans}
        approved_by_institution: dict[UUID, UUID] = {}
        for account in {**self._accounts, **updated}.values():
            if account.status != AccountStatus.APPROVED or account.institution_id is None:
                continue
            holder = approved_by_institution.setdefault(account.institution_id, account.id)
            if holder != account.id:
                raise StoreConflict(
                    f"Institution {account.institution_id} would have two approved admins"
                )

    async def commit(self, change: StoreChange) -> None:
        async with self._write_lock:
            self._check_versions(change)
            self._check_single_approved_admin(change)

            for plan in change.plans:
                self._accounts[plan.after.id] = plan.after
            if change.delete_institution_id is not None:
                del self._institutions[change.delete_institution_id]
                # Mirrors ON DELETE SET NULL on admin_accounts.institution_id
                for account_id, account in list(self._accounts.items()):
                    if account.institution_id == change.delete_institution_id:
                        self._accounts[account_id] = replace(account, institution_id=None)
            elif change.institution is not None:
                self._institutions[change.institution.id] = change.institution

    # Audit log

    async def append_audit(self, entry: AuditEntry) -> None:
        async with self._write_lock:
            self._audit[entry.id] = entry

    async def get_audit_entry(self, entry_id: UUID) -> AuditEntry | None:
        return self._audit.get(entry_id)

    def _sorted_audit(self, filters: AuditLogFilters, descending: bool) -> list[AuditEntry]:
        entries = [e for e in self._audit.values() if filters.matches(e)]
        entries.sort(key=lambda e: (e.timestamp, e.id), reverse=descending)
        return entries

    async def list_audit(
        self,
        filters: AuditLogFilters,
        *,
        skip: int = 0,
        limit: int = 50,
        descending: bool = True,
    ) -> tuple[list[AuditEntry], int]:
        entries = self._sorted_audit(filters, descending)
        return _page(entries, skip, limit), len(entries)

    async def iter_audit(
        self, filters: AuditLogFilters, *, batch_size: int = 500, max_rows: int | None = None
    ) -> AsyncIterator[AuditEntry]:
        entries = self._sorted_audit(filters, descending=True)
        if max_rows is not None:
            entries = entries[:max_rows]
        for entry in entries:
            yield entry

    async def delete_audit_before(self, cutoff: datetime) -> int:
        async with self._write_lock:
            stale = [entry_id for entry_id, e in self._audit.items() if e.timestamp < cutoff]
            for entry_id in stale:
                del self._audit[entry_id]
        return len(stale)

    async def delete_audit_entries(self, entry_ids: Iterable[UUID]) -> int:
        deleted = 0
        async with self._write_lock:
            for entry_id in set(entry_ids):
                if self._audit.pop(entry_id, None) is not None:
                    deleted += 1
        return deleted

    async def get_audit_stats(self, since: datetime | None = None) -> AuditStats:
        entries = [e for e in self._audit.values() if since is None or e.timestamp >= since]
        by_action: dict[str, int] = {}
        by_outcome: dict[str, int] = {}
        by_role: dict[str, int] = {}
        for entry in entries:
            by_action[entry.action_type.value] = by_action.get(entry.action_type.value, 0) + 1
            by_outcome[entry.outcome.value] = by_outcome.get(entry.outcome.value, 0) + 1
            by_role[entry.actor_role.value] = by_role.get(entry.actor_role.value, 0) + 1
        return AuditStats(
            total=len(entries),
            by_action_type=by_action,
            by_outcome=by_outcome,
            by_actor_role=by_role,
        )

    # Test helpers

    async def replace_institution(self, institution: Institution) -> None:
        """Overwrite an institution without a version check."""
        async with self._write_lock:
            self._institutions[institution.id] = institution

    async def replace_account(self, account: AdminAccount) -> None:
        """Overwrite an account without a version check."""
        async with self._write_lock:
            self._accounts[account.id] = account

    def audit_entries(self) -> list[AuditEntry]:
        """All audit entries in insertion order."""
        return list(self._audit.values())

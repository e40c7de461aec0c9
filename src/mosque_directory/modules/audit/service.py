"""
Audit Log Service

Read access to the audit log (list, detail, stats, CSV export) and the two
maintenance operations that delete entries (purge by age, bulk delete by id).

Maintenance operations are themselves audited: each call appends one entry,
whether it succeeds or fails, and that entry is written after the deletion
so it is never removed by the call that produced it.
"""

import asyncio
import csv
import io
import json
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, TypeVar
from uuid import UUID

from mosque_directory.core.auth import Actor, ActorRole
from mosque_directory.core.config import settings
from mosque_directory.modules.admin_accounts.errors import (
    LifecycleError,
    LifecycleValidationError,
    NotFoundError,
    OperationTimeoutError,
    PermissionDeniedError,
)

from .recorder import AuditRecorder
from .records import (
    AuditActionType,
    AuditEntry,
    AuditLogFilters,
    AuditOutcome,
    AuditStats,
    AuditTarget,
    AuditTargetType,
)

if TYPE_CHECKING:
    from mosque_directory.modules.admin_accounts.store import LifecycleStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_JUSTIFICATION_LENGTH = 10

CSV_COLUMNS = [
    "id",
    "timestamp",
    "action_type",
    "outcome",
    "error_code",
    "actor_id",
    "actor_role",
    "actor_name",
    "target_type",
    "target_id",
    "target_name",
    "details",
]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _csv_line(values: list[Any]) -> bytes:
    buffer = io.StringIO()
    csv.writer(buffer).writerow(values)
    return buffer.getvalue().encode("utf-8")


def entry_to_csv_row(entry: AuditEntry) -> list[Any]:
    return [
        str(entry.id),
        entry.timestamp.isoformat(),
        entry.action_type.value,
        entry.outcome.value,
        entry.error_code or "",
        str(entry.actor_id),
        entry.actor_role.value,
        entry.actor_name or "",
        entry.target_type.value,
        str(entry.target_id) if entry.target_id else "",
        entry.target_name or "",
        json.dumps(entry.details, sort_keys=True, default=str),
    ]


class AuditLogService:
    """Queries and maintenance over the audit log."""

    def __init__(
        self,
        store: "LifecycleStore",
        *,
        recorder: AuditRecorder | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], UUID] = uuid.uuid4,
        timeout_seconds: float | None = None,
        export_max_rows: int | None = None,
    ):
        self.store = store
        self.clock = clock
        self.timeout_seconds = timeout_seconds or settings.store_timeout_seconds
        self.export_max_rows = export_max_rows or settings.audit_export_max_rows
        self.recorder = recorder or AuditRecorder(
            store, clock, id_factory, timeout_seconds=self.timeout_seconds
        )

    async def _with_timeout(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except TimeoutError as e:
            logger.error(f"Audit store operation timed out after {self.timeout_seconds}s")
            raise OperationTimeoutError(self.timeout_seconds) from e

    # ============================================
    # Queries
    # ============================================

    async def list_entries(
        self,
        filters: AuditLogFilters | None = None,
        *,
        skip: int = 0,
        limit: int = 50,
        descending: bool = True,
    ) -> dict[str, Any]:
        """
        Paginated audit entries, newest first unless ``descending`` is False.

        Returns:
            Dict with items, total, skip and limit
        """
        filters = filters or AuditLogFilters()
        if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
            raise LifecycleValidationError("date_from must not be after date_to.")

        limit = min(max(1, limit), 100)
        skip = max(0, skip)

        entries, total = await self._with_timeout(
            self.store.list_audit(filters, skip=skip, limit=limit, descending=descending)
        )
        return {"items": entries, "total": total, "skip": skip, "limit": limit}

    async def get_entry(self, entry_id: UUID) -> AuditEntry:
        entry = await self._with_timeout(self.store.get_audit_entry(entry_id))
        if entry is None:
            raise NotFoundError("Audit entry", entry_id, error_code="AUDIT_ENTRY_NOT_FOUND")
        return entry

    async def get_stats(self, days: int | None = 30) -> AuditStats:
        """Counts by action type, outcome and actor role over the last ``days`` days."""
        if days is not None and days < 1:
            raise LifecycleValidationError("days must be at least 1.")
        since = self.clock() - timedelta(days=days) if days is not None else None
        return await self._with_timeout(self.store.get_audit_stats(since))

    async def export_csv(self, filters: AuditLogFilters | None = None) -> AsyncIterator[bytes]:
        """
        Stream matching entries as CSV, newest first.

        Yields the header line first, then one encoded line per entry, up to
        ``export_max_rows`` entries.
        """
        filters = filters or AuditLogFilters()
        yield _csv_line(CSV_COLUMNS)

        exported = 0
        async for entry in self.store.iter_audit(filters, max_rows=self.export_max_rows):
            yield _csv_line(entry_to_csv_row(entry))
            exported += 1

        logger.info(f"Exported {exported} audit entries")

    # ============================================
    # Maintenance
    # ============================================

    @staticmethod
    def _check_maintenance(actor: Actor, reason: str | None) -> str:
        if actor.role != ActorRole.SUPER_ADMIN:
            raise PermissionDeniedError("Only a super admin may delete audit entries.")
        justification = (reason or "").strip()
        if len(justification) < MIN_JUSTIFICATION_LENGTH:
            raise LifecycleValidationError(
                f"A justification of at least {MIN_JUSTIFICATION_LENGTH} characters is required."
            )
        return justification

    async def _audited(
        self,
        action_type: AuditActionType,
        actor: Actor,
        details: dict[str, Any],
        operation: Callable[[], Awaitable[int]],
    ) -> int:
        target = AuditTarget(AuditTargetType.AUDIT_LOG, None, "audit log")
        try:
            deleted = await self._with_timeout(operation())
        except LifecycleError as e:
            logger.warning(f"{action_type.value} by {actor} failed: {e.error_code} - {e.message}")
            await self.recorder.record(
                action_type,
                actor,
                target,
                {**details, "error": e.message},
                AuditOutcome.FAILED,
                e.error_code,
            )
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during {action_type.value}: {e}")
            await self.recorder.record(
                action_type,
                actor,
                target,
                {**details, "error": "An unexpected error occurred."},
                AuditOutcome.FAILED,
                "INTERNAL_ERROR",
            )
            raise

        await self.recorder.record(
            action_type,
            actor,
            target,
            {**details, "deleted_count": deleted},
            AuditOutcome.SUCCESS,
        )
        return deleted

    async def purge(self, older_than_days: int, reason: str, actor: Actor) -> int:
        """
        Delete entries older than ``older_than_days`` days.

        Returns:
            Number of entries deleted
        """
        details: dict[str, Any] = {"older_than_days": older_than_days, "reason": reason}

        async def operation() -> int:
            justification = self._check_maintenance(actor, reason)
            if older_than_days < 1:
                raise LifecycleValidationError("older_than_days must be at least 1.")

            cutoff = self.clock() - timedelta(days=older_than_days)
            details["cutoff"] = cutoff.isoformat()
            deleted = await self.store.delete_audit_before(cutoff)
            logger.warning(
                f"Audit log purged by {actor.id}: {deleted} entries older than {cutoff.isoformat()} "
                f"({justification})"
            )
            return deleted

        return await self._audited(AuditActionType.AUDIT_LOGS_PURGED, actor, details, operation)

    async def bulk_delete(self, entry_ids: list[UUID], reason: str, actor: Actor) -> int:
        """
        Delete specific entries by id.

        Returns:
            Number of entries deleted (ids that do not exist are ignored)
        """
        details: dict[str, Any] = {
            "requested_ids": [str(entry_id) for entry_id in entry_ids],
            "reason": reason,
        }

        async def operation() -> int:
            justification = self._check_maintenance(actor, reason)
            if not entry_ids:
                raise LifecycleValidationError("At least one audit entry id is required.")

            deleted = await self.store.delete_audit_entries(entry_ids)
            logger.warning(
                f"{deleted} audit entries bulk-deleted by {actor.id} ({justification})"
            )
            return deleted

        return await self._audited(AuditActionType.AUDIT_LOGS_BULK_DELETED, actor, details, operation)

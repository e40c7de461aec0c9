"""
Audit Log Router

Endpoints for super admins to inspect and maintain the audit log.

Endpoints:
- GET /admin/audit-logs - List entries with filters and pagination
- GET /admin/audit-logs/stats - Counts by action type, outcome and role
- GET /admin/audit-logs/export - Download matching entries as CSV
- GET /admin/audit-logs/{id} - Get one entry
- POST /admin/audit-logs/purge - Delete entries older than N days
- POST /admin/audit-logs/bulk-delete - Delete entries by id

Security:
- All endpoints require a super admin token
- Purge and bulk delete require a written justification, are rate limited,
  and are themselves recorded in the audit log
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from mosque_directory.core.auth import Actor, ActorRole, get_current_super_admin
from mosque_directory.core.rate_limit import enforce_actor_rate_limit
from mosque_directory.modules.admin_accounts.dependencies import get_audit_service
from mosque_directory.modules.admin_accounts.errors import LifecycleError
from mosque_directory.modules.shared.http import handle_service_error, internal_error

from .records import AuditActionType, AuditLogFilters, AuditOutcome, AuditTargetType
from .schemas import (
    AuditEntryListResponse,
    AuditEntryResponse,
    AuditStatsResponse,
    BulkDeleteRequest,
    MaintenanceResponse,
    PurgeRequest,
)
from .service import AuditLogService

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_PURGE = (3, 3600)  # 3 purges per hour
RATE_LIMIT_BULK_DELETE = (10, 3600)  # 10 bulk deletes per hour
RATE_LIMIT_EXPORT = (10, 60)  # 10 exports per minute


def _filters(
    action_type: AuditActionType | None = Query(None, description="Filter by action type"),
    actor_role: ActorRole | None = Query(None, description="Filter by actor role"),
    outcome: AuditOutcome | None = Query(None, description="Filter by outcome"),
    target_type: AuditTargetType | None = Query(None, description="Filter by target type"),
    date_from: datetime | None = Query(None, description="Entries at or after this time"),
    date_to: datetime | None = Query(None, description="Entries at or before this time"),
    search: str | None = Query(
        None, min_length=1, max_length=100, description="Search actor or target name"
    ),
) -> AuditLogFilters:
    return AuditLogFilters(
        action_type=action_type,
        actor_role=actor_role,
        outcome=outcome,
        target_type=target_type,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )


@router.get(
    "",
    response_model=AuditEntryListResponse,
    summary="List Audit Entries",
)
async def list_audit_entries(
    filters: AuditLogFilters = Depends(_filters),
    sort_order: str = Query("desc", pattern="^(asc|desc)$", description="Sort by timestamp"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    service: AuditLogService = Depends(get_audit_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AuditEntryListResponse:
    """List audit entries, newest first by default."""
    try:
        result = await service.list_entries(
            filters, skip=skip, limit=limit, descending=sort_order == "desc"
        )
        logger.info(f"Super admin {admin.id} listed audit entries: total={result['total']}")

        return AuditEntryListResponse(
            items=[AuditEntryResponse.from_record(entry) for entry in result["items"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "listing audit entries") from e


@router.get(
    "/stats",
    response_model=AuditStatsResponse,
    summary="Audit Statistics",
)
async def get_audit_stats(
    days: int = Query(30, ge=1, le=3650, description="Window in days"),
    service: AuditLogService = Depends(get_audit_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AuditStatsResponse:
    try:
        stats = await service.get_stats(days)
        return AuditStatsResponse.from_stats(stats, days)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "getting audit stats") from e


@router.get(
    "/export",
    summary="Export Audit Entries as CSV",
    response_class=StreamingResponse,
)
async def export_audit_entries(
    filters: AuditLogFilters = Depends(_filters),
    service: AuditLogService = Depends(get_audit_service),
    admin: Actor = Depends(get_current_super_admin),
) -> StreamingResponse:
    """Stream matching entries, newest first, as a CSV download."""
    await enforce_actor_rate_limit(admin.id, "audit_export", *RATE_LIMIT_EXPORT)

    filename = f"audit-log-{datetime.now(UTC).strftime('%Y%m%d-%H%M%S')}.csv"
    logger.info(f"Super admin {admin.id} exporting audit entries")

    return StreamingResponse(
        service.export_csv(filters),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{entry_id}",
    response_model=AuditEntryResponse,
    summary="Get Audit Entry",
)
async def get_audit_entry(
    entry_id: UUID,
    service: AuditLogService = Depends(get_audit_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AuditEntryResponse:
    try:
        entry = await service.get_entry(entry_id)
        return AuditEntryResponse.from_record(entry)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"getting audit entry {entry_id}") from e


@router.post(
    "/purge",
    response_model=MaintenanceResponse,
    summary="Purge Old Audit Entries",
    description="""
Delete every entry older than `older_than_days` days.

**Requirements:**
- `older_than_days` of at least 1
- A justification (`reason`) of at least 10 characters

The purge is itself recorded in the audit log.

**Access:** Super admin only
""",
)
async def purge_audit_entries(
    request: PurgeRequest,
    service: AuditLogService = Depends(get_audit_service),
    admin: Actor = Depends(get_current_super_admin),
) -> MaintenanceResponse:
    await enforce_actor_rate_limit(admin.id, "audit_purge", *RATE_LIMIT_PURGE)

    try:
        deleted = await service.purge(request.older_than_days, request.reason, admin)
        return MaintenanceResponse(
            deleted_count=deleted,
            message=f"Deleted {deleted} audit entries older than {request.older_than_days} days.",
        )

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "purging audit entries") from e


@router.post(
    "/bulk-delete",
    response_model=MaintenanceResponse,
    summary="Bulk Delete Audit Entries",
)
async def bulk_delete_audit_entries(
    request: BulkDeleteRequest,
    service: AuditLogService = Depends(get_audit_service),
    admin: Actor = Depends(get_current_super_admin),
) -> MaintenanceResponse:
    """Delete the listed entries. Unknown ids are ignored."""
    await enforce_actor_rate_limit(admin.id, "audit_bulk_delete", *RATE_LIMIT_BULK_DELETE)

    try:
        deleted = await service.bulk_delete(request.ids, request.reason, admin)
        return MaintenanceResponse(
            deleted_count=deleted,
            message=f"Deleted {deleted} of {len(request.ids)} requested audit entries.",
        )

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "bulk-deleting audit entries") from e

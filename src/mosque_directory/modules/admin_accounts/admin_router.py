"""
Admin Accounts Super Admin Router

API endpoints for super admins to review and manage admin accounts.
All endpoints require a super admin token.

Endpoints:
- GET /admin/accounts - List accounts with filters and pagination
- GET /admin/accounts/stats - Get dashboard statistics
- GET /admin/accounts/{id} - Get account details and history
- POST /admin/accounts/{id}/approve - Approve a pending application
- POST /admin/accounts/{id}/reject - Reject a pending application
- POST /admin/accounts/{id}/remove - Remove an approved admin
- POST /admin/accounts/{id}/allow-reapply - Let a released account reapply

Security:
- Input validation via Pydantic schemas
- Structured error responses ({"error", "message"})
- Every action is recorded in the audit log, including failures
- Rate limiting on action endpoints
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from mosque_directory.core.auth import Actor, get_current_super_admin
from mosque_directory.core.rate_limit import enforce_actor_rate_limit
from mosque_directory.modules.shared.http import handle_service_error, internal_error

from .dependencies import get_lifecycle_service
from .errors import LifecycleError
from .records import AccountStatus, AdminAccount
from .schemas import (
    AdminAccountListItem,
    AdminAccountListResponse,
    AdminAccountResponse,
    DashboardStats,
    GrantReapplyRequest,
    ReasonRequest,
)
from .service import LifecycleService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Rate Limiting Configuration
# ============================================

RATE_LIMIT_APPROVE = (10, 60)  # 10 approvals per minute
RATE_LIMIT_REJECT = (10, 60)  # 10 rejections per minute
RATE_LIMIT_REMOVE = (10, 60)  # 10 removals per minute
RATE_LIMIT_ALLOW_REAPPLY = (20, 60)  # 20 grants per minute


def _account_to_list_item(account: AdminAccount) -> AdminAccountListItem:
    return AdminAccountListItem(
        id=account.id,
        name=account.name,
        email=account.email,
        status=account.status,
        institution_id=account.institution_id,
        rejection_count=account.rejection_count,
        can_reapply=account.can_reapply,
        banned=account.banned,
        created_at=account.created_at,
        last_transition_at=account.last_transition_at,
    )


# ============================================
# List & Stats Endpoints
# ============================================


@router.get(
    "",
    response_model=AdminAccountListResponse,
    summary="List Admin Accounts",
    description="""
Get a paginated list of admin accounts, newest first.

**Filters:**
- `status`: Filter by account status
- `search`: Search in name and email

**Access:** Super admin only
""",
)
async def list_accounts(
    status: AccountStatus | None = Query(None, description="Filter by account status"),
    search: str | None = Query(None, min_length=1, max_length=100),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum records to return"),
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AdminAccountListResponse:
    try:
        result = await service.list_by_status(status, search=search, skip=skip, limit=limit)

        logger.info(
            f"Super admin {admin.id} listed accounts: "
            f"total={result['total']}, returned={len(result['accounts'])}"
        )

        return AdminAccountListResponse(
            accounts=[_account_to_list_item(account) for account in result["accounts"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "listing admin accounts") from e


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Get Dashboard Statistics",
)
async def get_stats(
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> DashboardStats:
    """Account counts by status, banned and reapply-allowed counts, unclaimed institutions."""
    try:
        stats = await service.get_dashboard_stats()
        return DashboardStats(**stats)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "getting dashboard stats") from e


@router.get(
    "/{admin_id}",
    response_model=AdminAccountResponse,
    summary="Get Admin Account",
)
async def get_account(
    admin_id: UUID,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AdminAccountResponse:
    try:
        account = await service.get_account_status(admin_id)
        logger.info(f"Super admin {admin.id} viewed account {admin_id}")
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"getting account {admin_id}") from e


# ============================================
# Decision Endpoints
# ============================================


@router.post(
    "/{admin_id}/approve",
    response_model=AdminAccountResponse,
    summary="Approve Application",
    description="""
Approve a pending application. The account becomes the institution's admin.

**Requirements:**
- Account must be pending
- Institution must still exist and have no approved admin

**Access:** Super admin only
""",
)
async def approve_account(
    admin_id: UUID,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AdminAccountResponse:
    await enforce_actor_rate_limit(admin.id, "approve", *RATE_LIMIT_APPROVE)

    try:
        account = await service.approve(admin_id, admin)
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"approving account {admin_id}") from e


@router.post(
    "/{admin_id}/reject",
    response_model=AdminAccountResponse,
    summary="Reject Application",
    description="""
Reject a pending application with a reason.

The third rejection bans the account permanently.

**Access:** Super admin only
""",
)
async def reject_account(
    admin_id: UUID,
    request: ReasonRequest,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AdminAccountResponse:
    await enforce_actor_rate_limit(admin.id, "reject", *RATE_LIMIT_REJECT)

    try:
        account = await service.reject(admin_id, admin, request.reason)
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"rejecting account {admin_id}") from e


@router.post(
    "/{admin_id}/remove",
    response_model=AdminAccountResponse,
    summary="Remove Admin",
)
async def remove_account(
    admin_id: UUID,
    request: ReasonRequest,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AdminAccountResponse:
    """Remove an approved admin from their institution."""
    await enforce_actor_rate_limit(admin.id, "remove", *RATE_LIMIT_REMOVE)

    try:
        account = await service.remove_admin(admin_id, admin, request.reason)
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"removing admin {admin_id}") from e


@router.post(
    "/{admin_id}/allow-reapply",
    response_model=AdminAccountResponse,
    summary="Allow Reapplication",
)
async def allow_reapply(
    admin_id: UUID,
    request: GrantReapplyRequest | None = None,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> AdminAccountResponse:
    """Grant a released, non-banned account permission to reapply."""
    await enforce_actor_rate_limit(admin.id, "allow_reapply", *RATE_LIMIT_ALLOW_REAPPLY)

    try:
        notes = request.notes if request else None
        account = await service.grant_reapply(admin_id, admin, notes)
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"allowing reapply for {admin_id}") from e

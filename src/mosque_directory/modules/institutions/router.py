"""
Institutions Router

Endpoints:
- POST /institutions - Add an institution (super admin)
- GET /institutions - List institutions (public)
- GET /institutions/expiring-codes - Codes expired or expiring soon (super admin)
- GET /institutions/{id} - Get one institution (public)
- GET /institutions/{id}/verification-code - Super admin view with the code
- DELETE /institutions/{id} - Delete an institution, releasing its admins (super admin)
- POST /institutions/{id}/regenerate-code - Issue a new verification code (super admin)

Public responses never include the verification code.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from mosque_directory.core.auth import Actor, get_current_super_admin
from mosque_directory.core.rate_limit import enforce_actor_rate_limit
from mosque_directory.modules.admin_accounts.dependencies import get_lifecycle_service
from mosque_directory.modules.admin_accounts.errors import LifecycleError
from mosque_directory.modules.admin_accounts.schemas import InstitutionDeletionResponse
from mosque_directory.modules.admin_accounts.service import LifecycleService
from mosque_directory.modules.shared.http import handle_service_error, internal_error

from .schemas import (
    DeleteInstitutionRequest,
    ExpiringCodeItem,
    InstitutionAdminView,
    InstitutionCreate,
    InstitutionListResponse,
    InstitutionResponse,
    RegenerateCodeRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_CREATE = (20, 60)  # 20 institutions per minute
RATE_LIMIT_DELETE = (5, 60)  # 5 deletions per minute
RATE_LIMIT_REGENERATE = (10, 60)  # 10 regenerations per minute


@router.post(
    "",
    response_model=InstitutionAdminView,
    status_code=status.HTTP_201_CREATED,
    summary="Create Institution",
)
async def create_institution(
    data: InstitutionCreate,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> InstitutionAdminView:
    """Add an institution with a freshly generated verification code."""
    await enforce_actor_rate_limit(admin.id, "create_institution", *RATE_LIMIT_CREATE)

    try:
        institution = await service.create_institution(data, admin)
        return InstitutionAdminView.from_record(institution)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "creating institution") from e


@router.get(
    "",
    response_model=InstitutionListResponse,
    summary="List Institutions",
    description="""
Get a paginated list of institutions ordered by name.

**Filters:**
- `search`: Search in name and location
- `claimed`: `true` for institutions with an admin, `false` for unclaimed ones
""",
)
async def list_institutions(
    search: str | None = Query(None, min_length=1, max_length=100),
    claimed: bool | None = Query(None, description="Filter by whether an admin is approved"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: LifecycleService = Depends(get_lifecycle_service),
) -> InstitutionListResponse:
    try:
        result = await service.list_institutions(
            search=search, claimed=claimed, skip=skip, limit=limit
        )
        return InstitutionListResponse(
            institutions=[InstitutionResponse.from_record(i) for i in result["institutions"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "listing institutions") from e


@router.get(
    "/expiring-codes",
    response_model=list[ExpiringCodeItem],
    summary="List Expiring Verification Codes",
)
async def list_expiring_codes(
    days_ahead: int = Query(7, ge=0, le=365, description="Look-ahead window in days"),
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> list[ExpiringCodeItem]:
    """Institutions whose code has expired or expires within `days_ahead` days."""
    try:
        institutions = await service.list_expiring_codes(days_ahead)
        now = service.clock()
        return [ExpiringCodeItem.from_record(i, now) for i in institutions]

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "listing expiring codes") from e


@router.get(
    "/{institution_id}",
    response_model=InstitutionResponse,
    summary="Get Institution",
)
async def get_institution(
    institution_id: UUID,
    service: LifecycleService = Depends(get_lifecycle_service),
) -> InstitutionResponse:
    try:
        institution = await service.get_institution(institution_id)
        return InstitutionResponse.from_record(institution)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"getting institution {institution_id}") from e


@router.get(
    "/{institution_id}/verification-code",
    response_model=InstitutionAdminView,
    summary="Get Institution (Super Admin View)",
)
async def get_institution_admin_view(
    institution_id: UUID,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> InstitutionAdminView:
    try:
        institution = await service.get_institution(institution_id)
        logger.info(f"Super admin {admin.id} viewed verification code of {institution_id}")
        return InstitutionAdminView.from_record(institution)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"getting institution {institution_id}") from e


@router.delete(
    "/{institution_id}",
    response_model=InstitutionDeletionResponse,
    summary="Delete Institution",
    description="""
Delete an institution.

Its approved admin and any pending applicants move to `institution_deleted`
and may reapply elsewhere unless banned.

**Access:** Super admin only
""",
)
async def delete_institution(
    institution_id: UUID,
    request: DeleteInstitutionRequest,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> InstitutionDeletionResponse:
    await enforce_actor_rate_limit(admin.id, "delete_institution", *RATE_LIMIT_DELETE)

    try:
        affected = await service.delete_institution(institution_id, admin, request.reason)
        return InstitutionDeletionResponse(
            institution_id=institution_id,
            affected_admin_ids=[account.id for account in affected],
            message=f"Institution deleted; {len(affected)} admin account(s) released.",
        )

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"deleting institution {institution_id}") from e


@router.post(
    "/{institution_id}/regenerate-code",
    response_model=InstitutionAdminView,
    summary="Regenerate Verification Code",
    description="""
Replace the institution's verification code.

The current approved admin, if any, moves to `code_regenerated` and must
submit the new code to regain access.

**Access:** Super admin only
""",
)
async def regenerate_code(
    institution_id: UUID,
    request: RegenerateCodeRequest,
    service: LifecycleService = Depends(get_lifecycle_service),
    admin: Actor = Depends(get_current_super_admin),
) -> InstitutionAdminView:
    await enforce_actor_rate_limit(admin.id, "regenerate_code", *RATE_LIMIT_REGENERATE)

    try:
        institution = await service.regenerate_code(
            institution_id, admin, request.reason, ttl_days=request.expiry_days
        )
        return InstitutionAdminView.from_record(institution)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"regenerating code for {institution_id}") from e

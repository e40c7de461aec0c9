"""
Applications Router

API endpoints used by applicants and admin account holders.

Endpoints:
- POST /applications - Apply to administer an institution (public)
- GET /applications/me - Get the caller's account status
- POST /applications/me/reapply - Reapply after being released
- POST /applications/me/validate-code - Restore access with a regenerated code

Security:
- The public endpoint is rate limited per client address
- Self-service endpoints require an admin-role token whose subject is the
  caller's account id
- Verification codes are never echoed back or logged in full
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from mosque_directory.core.auth import Actor, get_current_applicant
from mosque_directory.core.rate_limit import (
    RateLimitExceeded,
    check_rate_limit,
    enforce_actor_rate_limit,
)
from mosque_directory.modules.shared.http import handle_service_error, internal_error

from . import ban_policy
from .dependencies import get_lifecycle_service
from .errors import LifecycleError
from .records import AdminAccount
from .schemas import (
    AccountStatusResponse,
    AdminAccountResponse,
    ApplicantInfo,
    ReapplyRequest,
    ValidateCodeRequest,
)
from .service import LifecycleService, describe_status

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_APPLY = (5, 3600)  # 5 applications per hour per client address
RATE_LIMIT_REAPPLY = (5, 3600)  # 5 reapplications per hour
RATE_LIMIT_VALIDATE_CODE = (10, 900)  # 10 code attempts per 15 minutes


def _to_status_response(account: AdminAccount) -> AccountStatusResponse:
    return AccountStatusResponse(
        id=account.id,
        status=account.status,
        detail=account.detail,
        institution_id=account.institution_id,
        rejection_count=account.rejection_count,
        can_reapply=account.can_reapply,
        banned=account.banned,
        remaining_attempts=max(0, ban_policy.BAN_THRESHOLD - account.rejection_count),
        message=describe_status(account),
    )


@router.post(
    "",
    response_model=AdminAccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to Administer an Institution",
    description="""
Create a pending admin account for an institution.

**Requirements:**
- The institution exists and has no approved admin
- `verification_code` matches the institution's current code (case-insensitive)
- Email and phone are not already registered

The application then waits for a super admin decision.
""",
    responses={
        201: {"description": "Application submitted"},
        400: {"description": "Invalid verification code"},
        404: {"description": "Institution not found"},
        409: {"description": "Institution already has an admin, or account already exists"},
        429: {"description": "Too many applications from this address"},
    },
)
async def apply(
    applicant: ApplicantInfo,
    request: Request,
    service: LifecycleService = Depends(get_lifecycle_service),
) -> AdminAccountResponse:
    client_host = request.client.host if request.client else "unknown"
    if not await check_rate_limit(f"apply:{client_host}", *RATE_LIMIT_APPLY):
        logger.warning(f"Application rate limit exceeded for {client_host}")
        raise RateLimitExceeded(*RATE_LIMIT_APPLY)

    try:
        account = await service.apply_for_institution(applicant)
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, "submitting application") from e


@router.get(
    "/me",
    response_model=AccountStatusResponse,
    summary="Get My Account Status",
)
async def get_my_status(
    service: LifecycleService = Depends(get_lifecycle_service),
    actor: Actor = Depends(get_current_applicant),
) -> AccountStatusResponse:
    """Current status, remaining attempts and what the applicant can do next."""
    try:
        account = await service.get_account_status(actor.id)
        return _to_status_response(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"getting status for {actor.id}") from e


@router.post(
    "/me/reapply",
    response_model=AdminAccountResponse,
    summary="Reapply for an Institution",
    description="""
Move a released account back to pending for a target institution.

**Requirements:**
- The account is not banned and has been allowed to reapply
- The target institution exists and has no approved admin
- `verification_code` matches the target institution's current code
""",
)
async def reapply(
    request: ReapplyRequest,
    service: LifecycleService = Depends(get_lifecycle_service),
    actor: Actor = Depends(get_current_applicant),
) -> AdminAccountResponse:
    await enforce_actor_rate_limit(actor.id, "reapply", *RATE_LIMIT_REAPPLY)

    try:
        account = await service.reapply(
            actor.id,
            request.institution_id,
            request.verification_code,
            notes=request.notes,
            actor=actor,
        )
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"reapplying for {actor.id}") from e


@router.post(
    "/me/validate-code",
    response_model=AdminAccountResponse,
    summary="Validate Regenerated Code",
)
async def validate_code(
    request: ValidateCodeRequest,
    service: LifecycleService = Depends(get_lifecycle_service),
    actor: Actor = Depends(get_current_applicant),
) -> AdminAccountResponse:
    """Restore approved access after the institution's code was regenerated."""
    await enforce_actor_rate_limit(actor.id, "validate_code", *RATE_LIMIT_VALIDATE_CODE)

    try:
        account = await service.validate_code(actor.id, request.verification_code, actor=actor)
        return AdminAccountResponse.from_record(account)

    except LifecycleError as e:
        handle_service_error(e)
    except Exception as e:
        raise internal_error(e, f"validating code for {actor.id}") from e

"""
Institution Background Jobs

Scheduled tasks for verification code maintenance:
1. Rotate expired verification codes
2. Report codes that expire soon

Design Principles:
- Jobs are idempotent (safe to run multiple times)
- Jobs call the lifecycle service; every rotation is an audited operation
  performed by the system actor
- A failure on one institution does not stop the others

Schedule:
- Rotation runs every ``settings.code_rotation_interval_hours`` hours
- The expiry report runs daily
- Both can be triggered manually via the debug endpoints in development
"""

import logging
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from mosque_directory.core.config import settings
from mosque_directory.core.scheduler import register_job
from mosque_directory.modules.admin_accounts.dependencies import get_lifecycle_service

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 7

JOB_ID_ROTATE_CODES = "institutions_rotate_expired_codes"
JOB_ID_REPORT_EXPIRING = "institutions_report_expiring_codes"


async def rotate_expired_codes() -> dict[str, Any]:
    """
    Regenerate every expired verification code.

    Returns:
        Dict with checked, regenerated and failed counts
    """
    logger.info("Starting verification code rotation job...")
    result = await get_lifecycle_service().regenerate_expired_codes()
    logger.info(
        f"Verification code rotation completed. "
        f"Regenerated: {result['regenerated']}, Failed: {result['failed']}"
    )
    return result


async def report_expiring_codes() -> dict[str, Any]:
    """Log institutions whose code expires within EXPIRY_WARNING_DAYS days."""
    service = get_lifecycle_service()
    institutions = await service.list_expiring_codes(EXPIRY_WARNING_DAYS)
    now = service.clock()

    expired = [i for i in institutions if i.is_code_expired(now)]
    expiring = [i for i in institutions if not i.is_code_expired(now)]

    for institution in expiring:
        logger.info(
            f"Verification code for {institution.id} ({institution.name}) expires at "
            f"{institution.verification_code_expires_at.isoformat()}"
        )
    if expired:
        logger.warning(f"{len(expired)} institution(s) have expired verification codes")

    return {"expired": len(expired), "expiring": len(expiring)}


def register_institution_jobs() -> None:
    """
    Register institution background jobs with the scheduler.

    Call during application startup, before the scheduler is started.
    """
    logger.info("Registering institution background jobs...")

    interval = settings.code_rotation_interval_hours
    register_job(
        job_id=JOB_ID_ROTATE_CODES,
        func=rotate_expired_codes,
        trigger=IntervalTrigger(hours=interval),
    )
    logger.info(f"Registered job: {JOB_ID_ROTATE_CODES} (interval: {interval} hours)")

    register_job(
        job_id=JOB_ID_REPORT_EXPIRING,
        func=report_expiring_codes,
        trigger=IntervalTrigger(days=1),
    )
    logger.info(f"Registered job: {JOB_ID_REPORT_EXPIRING} (interval: 1 day)")

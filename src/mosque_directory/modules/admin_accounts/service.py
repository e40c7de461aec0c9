"""
Admin Account Lifecycle Service

Orchestrates every state-changing operation on admin accounts and the
institutions they administer:

1. Load current records from the lifecycle store
2. Decide the transition with the pure rules in ``lifecycle`` (consulting the
   ban policy on rejection and the reapplication validator on reapply)
3. Commit all touched records as one compare-and-swap
4. Record exactly one audit entry, success or failure
5. Send best-effort email notifications

Concurrency:
- A commit that loses a race raises ``StoreConflict``; the whole operation is
  re-run once from fresh state, then fails with ``ConflictError``
- Each attempt runs under a timeout and fails with ``OperationTimeoutError``;
  retrying is safe because a transition that already happened fails its guard

Security considerations:
- Verification codes are compared case-insensitively in constant time
- Codes are never logged in full
- A banned account can never regain reapplication rights
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar
from uuid import UUID

from mosque_directory.core.auth import SYSTEM_ACTOR, Actor, ActorRole
from mosque_directory.core.config import settings
from mosque_directory.modules.audit.recorder import AuditRecorder
from mosque_directory.modules.audit.records import (
    AuditActionType,
    AuditOutcome,
    AuditTarget,
    AuditTargetType,
)
from mosque_directory.modules.institutions.records import (
    Institution,
    codes_match,
    generate_verification_code,
    mask_code,
)
from mosque_directory.modules.institutions.schemas import InstitutionCreate

from . import ban_policy, lifecycle, reapplication
from .errors import (
    ConflictError,
    InstitutionAlreadyClaimedError,
    InstitutionNotFoundError,
    InvalidTransitionError,
    InvalidVerificationCodeError,
    LifecycleError,
    LifecycleValidationError,
    NotFoundError,
    OperationTimeoutError,
    PermissionDeniedError,
    StoreConflict,
    VerificationCodeExpiredError,
)
from .lifecycle import LifecycleAction, TransitionPlan
from .notifications import LifecycleNotifier
from .records import AccountStatus, AdminAccount, PendingDetail
from .schemas import ApplicantInfo
from .store import LifecycleStore, StoreChange

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Statuses whose accounts are released when their institution is deleted
_DELETION_AFFECTED_STATUSES = (AccountStatus.APPROVED, AccountStatus.PENDING)


@dataclass
class _Outcome:
    """Result of one successful attempt, plus what to audit and notify."""

    result: Any
    details: dict[str, Any] = field(default_factory=dict)
    notifications: list[Callable[[], Awaitable[None]]] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LifecycleService:
    """
    Entry point for admin-account lifecycle operations.

    Collaborators (store, notifier, clock, id and code generators) are
    injected so the service can run against any store backend and be tested
    with a fixed clock.
    """

    def __init__(
        self,
        store: LifecycleStore,
        *,
        notifier: LifecycleNotifier | None = None,
        recorder: AuditRecorder | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], UUID] = uuid.uuid4,
        code_factory: Callable[[], str] = generate_verification_code,
        timeout_seconds: float | None = None,
        code_ttl_days: int | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.id_factory = id_factory
        self.code_factory = code_factory
        self.timeout_seconds = timeout_seconds or settings.store_timeout_seconds
        self.code_ttl_days = code_ttl_days or settings.verification_code_ttl_days
        self.recorder = recorder or AuditRecorder(
            store, clock, id_factory, timeout_seconds=self.timeout_seconds
        )

    # ============================================
    # Execution helpers
    # ============================================

    async def _with_timeout(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except TimeoutError as e:
            logger.error(f"Store operation timed out after {self.timeout_seconds}s")
            raise OperationTimeoutError(self.timeout_seconds) from e

    async def _attempt_with_retry(self, attempt: Callable[[], Awaitable[_Outcome]]) -> _Outcome:
        """Run an attempt, re-running it once from fresh state on a write conflict."""
        try:
            return await self._with_timeout(attempt())
        except StoreConflict as first:
            logger.info(f"Write conflict, retrying once: {first}")

        try:
            return await self._with_timeout(attempt())
        except StoreConflict as second:
            logger.warning(f"Write conflict on retry, giving up: {second}")
            raise ConflictError() from second

    async def _run(
        self,
        action_type: AuditActionType,
        actor: Actor,
        target: AuditTarget,
        details: dict[str, Any],
        attempt: Callable[[], Awaitable[_Outcome]],
    ) -> Any:
        """
        Execute a state-changing operation and audit its outcome.

        Exactly one audit entry is written per call, after the store mutation
        on success or as soon as the call fails.
        """
        try:
            outcome = await self._attempt_with_retry(attempt)
        except LifecycleError as e:
            logger.warning(
                f"{action_type.value} by {actor} on {target.type.value}:{target.id} failed: "
                f"{e.error_code} - {e.message}"
            )
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
            {**details, **outcome.details},
            AuditOutcome.SUCCESS,
        )

        for notify in outcome.notifications:
            try:
                await notify()
            except Exception as e:
                # Notifications are best effort
                logger.error(f"Failed to send {action_type.value} notification: {e}", exc_info=True)

        return outcome.result

    async def _load_account(self, admin_id: UUID) -> AdminAccount:
        account = await self.store.get_account(admin_id)
        if account is None:
            raise NotFoundError("Admin account", admin_id, error_code="ADMIN_NOT_FOUND")
        return account

    async def _load_institution(self, institution_id: UUID | None) -> Institution:
        institution = await self.store.get_institution(institution_id) if institution_id else None
        if institution is None:
            raise InstitutionNotFoundError(institution_id)
        return institution

    def _transition_notice(
        self,
        plan: TransitionPlan,
        institution_name: str | None,
        reason: str | None,
    ) -> Callable[[], Awaitable[None]]:
        async def notify() -> None:
            if self.notifier is not None:
                await self.notifier.transitioned(plan.action, plan.after, institution_name, reason)

        return notify

    @staticmethod
    def _require_super_admin(actor: Actor, operation: str) -> None:
        if actor.role != ActorRole.SUPER_ADMIN:
            raise PermissionDeniedError(f"Only a super admin may {operation}.")

    @staticmethod
    def _require_reason(reason: str | None) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise LifecycleValidationError("A reason is required for this action.")
        return reason

    # ============================================
    # Applicant operations
    # ============================================

    async def apply_for_institution(
        self,
        applicant: ApplicantInfo,
        institution_id: UUID | None = None,
    ) -> AdminAccount:
        """
        Create a Pending admin account claiming an institution.

        The institution must exist, have no approved admin, and the applicant
        must present its current verification code. Email and phone must not
        belong to an existing account.
        """
        institution_id = institution_id or applicant.institution_id
        account_id = self.id_factory()
        actor = Actor(id=account_id, role=ActorRole.ADMIN, name=applicant.name, email=applicant.email)
        target = AuditTarget(AuditTargetType.ADMIN, account_id, applicant.name)
        details = {"institution_id": str(institution_id), "email": applicant.email}

        async def attempt() -> _Outcome:
            institution = await self._load_institution(institution_id)
            if institution.is_claimed:
                raise InstitutionAlreadyClaimedError(institution.id)
            if not codes_match(applicant.verification_code, institution.verification_code):
                logger.info(
                    f"Application for {institution.id} presented wrong code "
                    f"{mask_code(applicant.verification_code.strip().upper())}"
                )
                raise InvalidVerificationCodeError()

            now = self.clock()
            if institution.is_code_expired(now):
                logger.info(f"Application for {institution.id} presented an expired code")
                raise VerificationCodeExpiredError()
            account = AdminAccount(
                id=account_id,
                name=applicant.name.strip(),
                email=applicant.email.strip().lower(),
                phone=applicant.phone.strip(),
                detail=PendingDetail(submitted_at=now, notes=applicant.notes),
                institution_id=institution.id,
                created_at=now,
                last_transition_at=now,
            )
            created = await self.store.create_account(account)
            logger.info(f"Admin account {created.id} applied for institution {institution.id}")

            async def notify() -> None:
                if self.notifier is not None:
                    await self.notifier.application_received(created, institution, False)

            return _Outcome(
                created,
                {"institution_name": institution.name},
                [notify],
            )

        return await self._run(AuditActionType.ADMIN_REGISTERED, actor, target, details, attempt)

    async def reapply(
        self,
        admin_id: UUID,
        institution_id: UUID,
        submitted_code: str,
        notes: str | None = None,
        actor: Actor | None = None,
    ) -> AdminAccount:
        """
        Move a released account back to Pending for a target institution.

        Succeeds iff the reapplication validator's checks all pass.
        """
        actor = actor or Actor(id=admin_id, role=ActorRole.ADMIN)
        target = AuditTarget(AuditTargetType.ADMIN, admin_id)
        details: dict[str, Any] = {"institution_id": str(institution_id)}
        if notes:
            details["notes"] = notes

        async def attempt() -> _Outcome:
            account = await self._load_account(admin_id)
            target.name = account.name

            if actor.role != ActorRole.ADMIN or actor.id != account.id:
                raise InvalidTransitionError(
                    LifecycleAction.REAPPLY.value, account.status.value, actor.role.value
                )

            now = self.clock()
            institution = await self.store.get_institution(institution_id)
            claimants = []
            if institution is not None:
                claimants = await self.store.list_accounts_for_institution(
                    institution.id, [AccountStatus.PENDING]
                )
            grant = reapplication.validate(
                account,
                institution,
                submitted_code,
                institution_id=institution_id,
                now=now,
                has_pending_claimant=any(c.id != account.id for c in claimants),
            )
            plan = lifecycle.reapply(account, institution, grant, actor, now, notes)

            # Bump the institution so a concurrent reapply to it conflicts and
            # re-runs against the new pending claimant
            await self.store.commit(
                StoreChange(
                    plans=(plan,),
                    institution=replace(
                        institution, version=institution.version + 1, updated_at=now
                    ),
                    expected_institution_version=institution.version,
                )
            )
            logger.info(f"Admin {account.id} reapplied for institution {institution.id}")

            async def notify() -> None:
                if self.notifier is not None:
                    await self.notifier.application_received(plan.after, institution, True)

            return _Outcome(
                plan.after,
                {
                    "institution_name": institution.name,
                    "previous_status": account.status.value,
                    "rejection_count": account.rejection_count,
                },
                [notify],
            )

        return await self._run(
            AuditActionType.ADMIN_REAPPLICATION_SUBMITTED, actor, target, details, attempt
        )

    async def validate_code(
        self,
        admin_id: UUID,
        submitted_code: str,
        actor: Actor | None = None,
    ) -> AdminAccount:
        """Restore a CodeRegenerated admin to Approved with the institution's new code."""
        actor = actor or Actor(id=admin_id, role=ActorRole.ADMIN)
        target = AuditTarget(AuditTargetType.ADMIN, admin_id)

        async def attempt() -> _Outcome:
            account = await self._load_account(admin_id)
            target.name = account.name

            institution = (
                await self.store.get_institution(account.institution_id)
                if account.institution_id
                else None
            )
            now = self.clock()
            plan = lifecycle.validate_code(account, institution, submitted_code, actor, now)

            await self.store.commit(
                StoreChange(
                    plans=(plan,),
                    institution=replace(
                        institution,
                        admin_id=account.id,
                        version=institution.version + 1,
                        updated_at=now,
                    ),
                    expected_institution_version=institution.version,
                )
            )
            logger.info(f"Admin {account.id} re-validated code for institution {institution.id}")

            return _Outcome(
                plan.after,
                {"institution_id": str(institution.id), "institution_name": institution.name},
                [self._transition_notice(plan, institution.name, None)],
            )

        return await self._run(AuditActionType.ADMIN_CODE_VALIDATED, actor, target, {}, attempt)

    # ============================================
    # Super admin operations on accounts
    # ============================================

    async def approve(self, admin_id: UUID, actor: Actor) -> AdminAccount:
        """Approve a Pending account and make it the institution's admin."""
        target = AuditTarget(AuditTargetType.ADMIN, admin_id)

        async def attempt() -> _Outcome:
            account = await self._load_account(admin_id)
            target.name = account.name

            institution = (
                await self.store.get_institution(account.institution_id)
                if account.institution_id
                else None
            )
            now = self.clock()
            plan = lifecycle.approve(account, institution, actor, now)

            await self.store.commit(
                StoreChange(
                    plans=(plan,),
                    institution=replace(
                        institution,
                        admin_id=account.id,
                        version=institution.version + 1,
                        updated_at=now,
                    ),
                    expected_institution_version=institution.version,
                )
            )
            logger.info(f"Admin {account.id} approved for institution {institution.id} by {actor.id}")

            return _Outcome(
                plan.after,
                {"institution_id": str(institution.id), "institution_name": institution.name},
                [self._transition_notice(plan, institution.name, None)],
            )

        return await self._run(AuditActionType.ADMIN_APPROVED, actor, target, {}, attempt)

    async def reject(self, admin_id: UUID, actor: Actor, reason: str) -> AdminAccount:
        """Reject a Pending account, counting towards the ban threshold."""
        target = AuditTarget(AuditTargetType.ADMIN, admin_id)
        details = {"reason": reason}

        async def attempt() -> _Outcome:
            account = await self._load_account(admin_id)
            target.name = account.name

            institution = (
                await self.store.get_institution(account.institution_id)
                if account.institution_id
                else None
            )
            institution_name = institution.name if institution else None
            plan = lifecycle.reject(account, actor, self.clock(), reason, institution_name)

            await self.store.commit(StoreChange(plans=(plan,)))

            after = plan.after
            if after.banned:
                logger.warning(
                    f"Admin {after.id} banned after {after.rejection_count} rejections"
                )
            else:
                logger.info(f"Admin {after.id} rejected ({after.rejection_count} total)")

            return _Outcome(
                after,
                {
                    "institution_id": str(account.institution_id) if account.institution_id else None,
                    "institution_name": institution_name,
                    "rejection_count": after.rejection_count,
                    "banned": after.banned,
                },
                [self._transition_notice(plan, institution_name, plan.after.detail.reason)],
            )

        return await self._run(AuditActionType.ADMIN_REJECTED, actor, target, details, attempt)

    async def remove_admin(self, admin_id: UUID, actor: Actor, reason: str) -> AdminAccount:
        """Remove an Approved admin from their institution."""
        target = AuditTarget(AuditTargetType.ADMIN, admin_id)
        details = {"reason": reason}

        async def attempt() -> _Outcome:
            account = await self._load_account(admin_id)
            target.name = account.name

            institution = (
                await self.store.get_institution(account.institution_id)
                if account.institution_id
                else None
            )
            if institution is None:
                lifecycle.check_transition(account, LifecycleAction.REMOVE_ADMIN, actor)
                raise InstitutionNotFoundError(account.institution_id)

            now = self.clock()
            plan = lifecycle.remove_admin(account, institution, actor, now, reason)

            await self.store.commit(
                StoreChange(
                    plans=(plan,),
                    institution=replace(
                        institution,
                        admin_id=None if institution.admin_id == account.id else institution.admin_id,
                        version=institution.version + 1,
                        updated_at=now,
                    ),
                    expected_institution_version=institution.version,
                )
            )
            logger.info(f"Admin {account.id} removed from institution {institution.id} by {actor.id}")

            return _Outcome(
                plan.after,
                {"institution_id": str(institution.id), "institution_name": institution.name},
                [self._transition_notice(plan, institution.name, plan.after.detail.reason)],
            )

        return await self._run(AuditActionType.ADMIN_REMOVED, actor, target, details, attempt)

    async def grant_reapply(
        self,
        admin_id: UUID,
        actor: Actor,
        notes: str | None = None,
    ) -> AdminAccount:
        """Allow a released account to reapply. Always fails for banned accounts."""
        target = AuditTarget(AuditTargetType.ADMIN, admin_id)
        details: dict[str, Any] = {"notes": notes} if notes else {}

        async def attempt() -> _Outcome:
            account = await self._load_account(admin_id)
            target.name = account.name

            plan = lifecycle.grant_reapply(account, actor, self.clock())
            await self.store.commit(StoreChange(plans=(plan,)))
            logger.info(f"Admin {account.id} allowed to reapply by {actor.id}")

            return _Outcome(
                plan.after,
                {
                    "status": account.status.value,
                    "rejection_count": account.rejection_count,
                    "remaining_attempts": ban_policy.BAN_THRESHOLD - account.rejection_count,
                },
                [self._transition_notice(plan, None, notes)],
            )

        return await self._run(AuditActionType.ADMIN_ALLOWED_REAPPLY, actor, target, details, attempt)

    # ============================================
    # Super admin operations on institutions
    # ============================================

    async def create_institution(self, data: InstitutionCreate, actor: Actor) -> Institution:
        """Add an institution to the directory with a fresh verification code."""
        institution_id = self.id_factory()
        target = AuditTarget(AuditTargetType.INSTITUTION, institution_id, data.name)

        async def attempt() -> _Outcome:
            self._require_super_admin(actor, "create institutions")

            now = self.clock()
            institution = Institution(
                id=institution_id,
                name=data.name.strip(),
                location=data.location.strip(),
                verification_code=self.code_factory(),
                verification_code_expires_at=now + timedelta(days=self.code_ttl_days),
                created_at=now,
                updated_at=now,
                description=data.description,
                contact_phone=data.contact_phone,
                contact_email=str(data.contact_email) if data.contact_email else None,
            )
            created = await self.store.create_institution(institution)
            logger.info(f"Institution {created.id} created by {actor.id}")

            return _Outcome(created, {"location": created.location})

        return await self._run(AuditActionType.INSTITUTION_CREATED, actor, target, {}, attempt)

    async def delete_institution(
        self,
        institution_id: UUID,
        actor: Actor,
        reason: str,
    ) -> list[AdminAccount]:
        """
        Delete an institution, releasing its approved admin and pending applicants.

        Returns:
            The affected accounts in their new InstitutionDeleted state
        """
        target = AuditTarget(AuditTargetType.INSTITUTION, institution_id)
        details = {"reason": reason}

        async def attempt() -> _Outcome:
            self._require_super_admin(actor, "delete institutions")
            reason_text = self._require_reason(reason)

            institution = await self._load_institution(institution_id)
            target.name = institution.name

            accounts = await self.store.list_accounts_for_institution(
                institution.id, _DELETION_AFFECTED_STATUSES
            )
            now = self.clock()
            plans = tuple(
                lifecycle.institution_deleted(account, institution, actor, now, reason_text)
                for account in accounts
            )

            await self.store.commit(
                StoreChange(
                    plans=plans,
                    delete_institution_id=institution.id,
                    expected_institution_version=institution.version,
                )
            )
            logger.info(
                f"Institution {institution.id} deleted by {actor.id}; "
                f"{len(plans)} admin account(s) released"
            )

            return _Outcome(
                [plan.after for plan in plans],
                {
                    "institution_name": institution.name,
                    "location": institution.location,
                    "affected_admin_ids": [str(plan.after.id) for plan in plans],
                },
                [self._transition_notice(plan, institution.name, reason_text) for plan in plans],
            )

        return await self._run(AuditActionType.INSTITUTION_DELETED, actor, target, details, attempt)

    async def regenerate_code(
        self,
        institution_id: UUID,
        actor: Actor,
        reason: str,
        ttl_days: int | None = None,
    ) -> Institution:
        """
        Replace an institution's verification code.

        The current approved admin (if any) moves to CodeRegenerated and must
        present the new code to regain access.
        """
        target = AuditTarget(AuditTargetType.INSTITUTION, institution_id)
        details = {"reason": reason}

        async def attempt() -> _Outcome:
            if actor.role not in (ActorRole.SUPER_ADMIN, ActorRole.SYSTEM):
                raise PermissionDeniedError("Only a super admin may regenerate verification codes.")
            reason_text = self._require_reason(reason)

            institution = await self._load_institution(institution_id)
            target.name = institution.name

            now = self.clock()
            plans: tuple[TransitionPlan, ...] = ()
            if institution.admin_id is not None:
                admin = await self._load_account(institution.admin_id)
                plans = (lifecycle.code_regenerated(admin, institution, actor, now, reason_text),)

            updated = replace(
                institution.with_new_code(self.code_factory(), now, ttl_days or self.code_ttl_days),
                version=institution.version + 1,
            )
            await self.store.commit(
                StoreChange(
                    plans=plans,
                    institution=updated,
                    expected_institution_version=institution.version,
                )
            )
            logger.info(
                f"Verification code regenerated for institution {institution.id} by {actor}"
            )

            return _Outcome(
                updated,
                {
                    "previous_admin_id": str(institution.admin_id) if institution.admin_id else None,
                    "code_expires_at": updated.verification_code_expires_at.isoformat(),
                    "previous_code_expired": institution.is_code_expired(now),
                },
                [self._transition_notice(plan, institution.name, reason_text) for plan in plans],
            )

        return await self._run(
            AuditActionType.VERIFICATION_CODE_REGENERATED, actor, target, details, attempt
        )

    async def regenerate_expired_codes(
        self,
        actor: Actor = SYSTEM_ACTOR,
        reason: str = "Verification code expired",
    ) -> dict[str, Any]:
        """
        Regenerate every expired verification code.

        Each institution is a separate audited operation; a failure on one
        does not stop the others.
        """
        expired = await self._with_timeout(
            self.store.list_institutions_with_code_expiring_before(self.clock())
        )

        regenerated: list[UUID] = []
        failed = 0
        for institution in expired:
            try:
                await self.regenerate_code(institution.id, actor, reason)
                regenerated.append(institution.id)
            except LifecycleError as e:
                failed += 1
                logger.error(f"Failed to regenerate code for {institution.id}: {e.message}")

        logger.info(
            f"Expired code rotation: {len(expired)} checked, {len(regenerated)} regenerated, "
            f"{failed} failed"
        )
        return {
            "checked": len(expired),
            "regenerated": len(regenerated),
            "failed": failed,
            "institution_ids": regenerated,
        }

    # ============================================
    # Queries
    # ============================================

    async def get_account_status(self, admin_id: UUID) -> AdminAccount:
        return await self._with_timeout(self._load_account(admin_id))

    async def list_by_status(
        self,
        status: AccountStatus | None = None,
        *,
        search: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> dict[str, Any]:
        """
        Paginated accounts, newest first.

        Returns:
            Dict with accounts, total, skip and limit
        """
        limit = min(max(1, limit), 100)
        skip = max(0, skip)

        accounts, total = await self._with_timeout(
            self.store.list_accounts(status=status, search=search, skip=skip, limit=limit)
        )
        return {"accounts": accounts, "total": total, "skip": skip, "limit": limit}

    async def get_institution(self, institution_id: UUID) -> Institution:
        return await self._with_timeout(self._load_institution(institution_id))

    async def list_institutions(
        self,
        *,
        search: str | None = None,
        claimed: bool | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> dict[str, Any]:
        limit = min(max(1, limit), 100)
        skip = max(0, skip)

        institutions, total = await self._with_timeout(
            self.store.list_institutions(search=search, claimed=claimed, skip=skip, limit=limit)
        )
        return {"institutions": institutions, "total": total, "skip": skip, "limit": limit}

    async def list_expiring_codes(self, days_ahead: int = 7) -> list[Institution]:
        """Institutions whose code has expired or expires within ``days_ahead`` days."""
        if days_ahead < 0:
            raise LifecycleValidationError("days_ahead cannot be negative.")
        cutoff = self.clock() + timedelta(days=days_ahead)
        return await self._with_timeout(
            self.store.list_institutions_with_code_expiring_before(cutoff)
        )

    async def get_dashboard_stats(self) -> dict[str, Any]:
        counts = await self._with_timeout(self.store.get_dashboard_counts())
        return {
            "accounts_by_status": counts.accounts_by_status,
            "banned_accounts": counts.banned_accounts,
            "reapply_allowed": counts.reapply_allowed,
            "total_institutions": counts.total_institutions,
            "unclaimed_institutions": counts.unclaimed_institutions,
        }


def describe_status(account: AdminAccount) -> str:
    """Human-readable explanation of an account's status for the applicant."""
    remaining = max(0, ban_policy.BAN_THRESHOLD - account.rejection_count)

    if account.banned:
        return "Your account has been permanently banned after repeated rejections."
    if account.status == AccountStatus.PENDING:
        return "Your application is awaiting review by a super admin."
    if account.status == AccountStatus.APPROVED:
        return "Your account is approved."
    if account.status == AccountStatus.CODE_REGENERATED:
        return "Your institution's verification code changed. Enter the new code to restore access."
    if account.can_reapply:
        return f"You may reapply. {remaining} attempt(s) remaining before a permanent ban."
    return "You may reapply once a super admin allows it."

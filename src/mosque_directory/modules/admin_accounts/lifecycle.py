"""
Admin Account Lifecycle

Pure transition logic: given an account, an action and the acting caller,
compute the account's next state or raise. Nothing here touches the store;
the service layer loads records, calls these functions and commits the
resulting ``TransitionPlan``.

State table (from -> action [actors] -> to):

    pending            approve            [super_admin]          approved
    pending            reject             [super_admin]          rejected
    pending            delete_institution [super_admin]          institution_deleted
    approved           remove_admin       [super_admin]          removed
    approved           delete_institution [super_admin]          institution_deleted
    approved           regenerate_code    [super_admin, system]  code_regenerated
    rejected/removed/
    institution_deleted/
    code_regenerated   grant_reapply      [super_admin]          (unchanged, can_reapply=true)
                       reapply            [admin, self]          pending
    code_regenerated   validate_code      [admin, self]          approved
"""

import enum
from dataclasses import dataclass, replace
from datetime import datetime

from mosque_directory.core.auth import Actor, ActorRole
from mosque_directory.modules.institutions.records import Institution, codes_match

from . import ban_policy
from .errors import (
    BannedError,
    InstitutionAlreadyClaimedError,
    InstitutionNotFoundError,
    InvalidTransitionError,
    InvalidVerificationCodeError,
    LifecycleValidationError,
)
from .reapplication import ReapplicationGrant
from .records import (
    REAPPLY_ELIGIBLE_STATUSES,
    AccountStatus,
    AdminAccount,
    ApprovedDetail,
    CodeRegeneratedDetail,
    HistoryEntry,
    InstitutionDeletedDetail,
    InstitutionSnapshot,
    PendingDetail,
    RejectedDetail,
    RemovedDetail,
)


class LifecycleAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REMOVE_ADMIN = "remove_admin"
    DELETE_INSTITUTION = "delete_institution"
    REGENERATE_CODE = "regenerate_code"
    GRANT_REAPPLY = "grant_reapply"
    REAPPLY = "reapply"
    VALIDATE_CODE = "validate_code"


@dataclass(frozen=True)
class TransitionRule:
    to_status: AccountStatus | None  # None keeps the current status
    actors: frozenset[ActorRole]


_SUPER_ADMIN = frozenset({ActorRole.SUPER_ADMIN})
_SELF = frozenset({ActorRole.ADMIN})

TRANSITIONS: dict[tuple[AccountStatus, LifecycleAction], TransitionRule] = {
    (AccountStatus.PENDING, LifecycleAction.APPROVE): TransitionRule(
        AccountStatus.APPROVED, _SUPER_ADMIN
    ),
    (AccountStatus.PENDING, LifecycleAction.REJECT): TransitionRule(
        AccountStatus.REJECTED, _SUPER_ADMIN
    ),
    (AccountStatus.PENDING, LifecycleAction.DELETE_INSTITUTION): TransitionRule(
        AccountStatus.INSTITUTION_DELETED, _SUPER_ADMIN
    ),
    (AccountStatus.APPROVED, LifecycleAction.REMOVE_ADMIN): TransitionRule(
        AccountStatus.REMOVED, _SUPER_ADMIN
    ),
    (AccountStatus.APPROVED, LifecycleAction.DELETE_INSTITUTION): TransitionRule(
        AccountStatus.INSTITUTION_DELETED, _SUPER_ADMIN
    ),
    (AccountStatus.APPROVED, LifecycleAction.REGENERATE_CODE): TransitionRule(
        AccountStatus.CODE_REGENERATED, frozenset({ActorRole.SUPER_ADMIN, ActorRole.SYSTEM})
    ),
    (AccountStatus.CODE_REGENERATED, LifecycleAction.VALIDATE_CODE): TransitionRule(
        AccountStatus.APPROVED, _SELF
    ),
}
for _status in REAPPLY_ELIGIBLE_STATUSES:
    TRANSITIONS[(_status, LifecycleAction.GRANT_REAPPLY)] = TransitionRule(None, _SUPER_ADMIN)
    TRANSITIONS[(_status, LifecycleAction.REAPPLY)] = TransitionRule(
        AccountStatus.PENDING, _SELF
    )


@dataclass(frozen=True)
class TransitionPlan:
    """An account's state before and after one transition."""

    action: LifecycleAction
    before: AdminAccount
    after: AdminAccount

    @property
    def expected_version(self) -> int:
        return self.before.version


def check_transition(
    account: AdminAccount,
    action: LifecycleAction,
    actor: Actor,
) -> AccountStatus:
    """
    Look up the transition for (current status, action) and authorize the actor.

    Applicants (admin role) may only act on their own account.

    Returns:
        The status the account will have after the transition

    Raises:
        InvalidTransitionError: If no rule matches or the actor is not allowed
    """
    rule = TRANSITIONS.get((account.status, action))
    if rule is None:
        raise InvalidTransitionError(action.value, account.status.value)

    if actor.role not in rule.actors or (
        actor.role == ActorRole.ADMIN and actor.id != account.id
    ):
        raise InvalidTransitionError(action.value, account.status.value, actor.role.value)

    return rule.to_status or account.status


def _snapshot(institution: Institution) -> InstitutionSnapshot:
    return InstitutionSnapshot(id=institution.id, name=institution.name, location=institution.location)


def _require_reason(reason: str) -> str:
    reason = reason.strip() if reason else ""
    if not reason:
        raise LifecycleValidationError("A reason is required for this action.")
    return reason


def _history_entry(
    status: AccountStatus,
    institution_id,
    institution_name: str | None,
    reason: str,
    now: datetime,
) -> HistoryEntry:
    return HistoryEntry(
        status=status,
        institution_id=institution_id,
        institution_name=institution_name,
        reason=reason,
        timestamp=now,
    )


def _advance(account: AdminAccount, now: datetime, **changes) -> AdminAccount:
    return replace(account, version=account.version + 1, last_transition_at=now, **changes)


def approve(
    account: AdminAccount,
    institution: Institution | None,
    actor: Actor,
    now: datetime,
) -> TransitionPlan:
    """Pending -> Approved. The institution must exist and have no approved admin."""
    check_transition(account, LifecycleAction.APPROVE, actor)

    if institution is None:
        raise InstitutionNotFoundError(account.institution_id)
    if institution.admin_id is not None and institution.admin_id != account.id:
        raise InstitutionAlreadyClaimedError(institution.id)

    after = _advance(
        account,
        now,
        detail=ApprovedDetail(approved_at=now, approved_by=actor.id),
        institution_id=institution.id,
        can_reapply=False,
    )
    return TransitionPlan(LifecycleAction.APPROVE, account, after)


def reject(
    account: AdminAccount,
    actor: Actor,
    now: datetime,
    reason: str,
    institution_name: str | None = None,
) -> TransitionPlan:
    """
    Pending -> Rejected.

    The only transition that increments ``rejection_count``; the ban policy
    is evaluated on the new count.
    """
    check_transition(account, LifecycleAction.REJECT, actor)
    reason = _require_reason(reason)

    rejection_count = account.rejection_count + 1
    decision = ban_policy.evaluate(rejection_count)

    after = _advance(
        account,
        now,
        detail=RejectedDetail(rejected_at=now, rejected_by=actor.id, reason=reason),
        rejection_count=rejection_count,
        can_reapply=False,
        banned=account.banned or decision.banned,
        history=account.history
        + (
            _history_entry(
                AccountStatus.REJECTED, account.institution_id, institution_name, reason, now
            ),
        ),
    )
    return TransitionPlan(LifecycleAction.REJECT, account, after)


def _release(
    account: AdminAccount,
    action: LifecycleAction,
    institution: Institution,
    actor: Actor,
    now: datetime,
    reason: str,
    institution_id_after,
) -> TransitionPlan:
    """Shared body of the transitions that end an account's tie to an institution."""
    to_status = check_transition(account, action, actor)
    reason = _require_reason(reason)
    snapshot = _snapshot(institution)

    if to_status == AccountStatus.REMOVED:
        detail = RemovedDetail(
            institution=snapshot, removed_at=now, removed_by=actor.id, reason=reason
        )
    elif to_status == AccountStatus.INSTITUTION_DELETED:
        detail = InstitutionDeletedDetail(
            institution=snapshot, deleted_at=now, deleted_by=actor.id, reason=reason
        )
    else:
        detail = CodeRegeneratedDetail(
            institution=snapshot, regenerated_at=now, regenerated_by=actor.id, reason=reason
        )

    # The account did nothing wrong, so it may reapply unless already banned.
    decision = ban_policy.evaluate(account.rejection_count)

    after = _advance(
        account,
        now,
        detail=detail,
        institution_id=institution_id_after,
        can_reapply=decision.can_reapply_allowed and not account.banned,
        history=account.history
        + (_history_entry(to_status, institution.id, institution.name, reason, now),),
    )
    return TransitionPlan(action, account, after)


def remove_admin(
    account: AdminAccount,
    institution: Institution,
    actor: Actor,
    now: datetime,
    reason: str,
) -> TransitionPlan:
    """Approved -> Removed."""
    return _release(
        account, LifecycleAction.REMOVE_ADMIN, institution, actor, now, reason, institution.id
    )


def institution_deleted(
    account: AdminAccount,
    institution: Institution,
    actor: Actor,
    now: datetime,
    reason: str,
) -> TransitionPlan:
    """Approved or Pending -> InstitutionDeleted. The account keeps only a snapshot."""
    return _release(
        account, LifecycleAction.DELETE_INSTITUTION, institution, actor, now, reason, None
    )


def code_regenerated(
    account: AdminAccount,
    institution: Institution,
    actor: Actor,
    now: datetime,
    reason: str,
) -> TransitionPlan:
    """Approved -> CodeRegenerated."""
    return _release(
        account, LifecycleAction.REGENERATE_CODE, institution, actor, now, reason, institution.id
    )


def grant_reapply(account: AdminAccount, actor: Actor, now: datetime) -> TransitionPlan:
    """
    Allow a rejected/removed/released account to reapply.

    A banned account can never be granted reapplication, whoever asks.
    """
    if account.banned:
        raise BannedError(account.id)

    check_transition(account, LifecycleAction.GRANT_REAPPLY, actor)

    after = _advance(account, now, can_reapply=True)
    return TransitionPlan(LifecycleAction.GRANT_REAPPLY, account, after)


def reapply(
    account: AdminAccount,
    institution: Institution,
    grant: ReapplicationGrant,
    actor: Actor,
    now: datetime,
    notes: str | None = None,
) -> TransitionPlan:
    """Released account -> Pending for the institution the grant was issued for."""
    check_transition(account, LifecycleAction.REAPPLY, actor)
    grant.consume(account, institution)

    after = _advance(
        account,
        now,
        detail=PendingDetail(submitted_at=now, is_reapplication=True, notes=notes),
        institution_id=institution.id,
        can_reapply=False,
    )
    return TransitionPlan(LifecycleAction.REAPPLY, account, after)


def validate_code(
    account: AdminAccount,
    institution: Institution | None,
    submitted_code: str,
    actor: Actor,
    now: datetime,
) -> TransitionPlan:
    """
    CodeRegenerated -> Approved, when the admin presents the institution's new code.

    The institution must still exist and must not have been claimed by
    another admin in the meantime.
    """
    if account.banned:
        raise BannedError(account.id)

    check_transition(account, LifecycleAction.VALIDATE_CODE, actor)

    if institution is None:
        raise InstitutionNotFoundError(account.institution_id)
    if institution.is_claimed:
        raise InstitutionAlreadyClaimedError(institution.id)
    if not codes_match(submitted_code, institution.verification_code):
        raise InvalidVerificationCodeError()

    after = _advance(
        account,
        now,
        detail=ApprovedDetail(approved_at=now, approved_by=actor.id, via_code_validation=True),
        institution_id=institution.id,
        can_reapply=False,
    )
    return TransitionPlan(LifecycleAction.VALIDATE_CODE, account, after)

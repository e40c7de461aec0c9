"""
Tests for the pure transition functions.

No store or service involved: each test builds records, applies one
transition and checks the resulting plan.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from mosque_directory.core.auth import SYSTEM_ACTOR, Actor, ActorRole
from mosque_directory.modules.admin_accounts import lifecycle
from mosque_directory.modules.admin_accounts.errors import (
    BannedError,
    InstitutionAlreadyClaimedError,
    InstitutionNotFoundError,
    InvalidTransitionError,
    InvalidVerificationCodeError,
    LifecycleValidationError,
)
from mosque_directory.modules.admin_accounts.lifecycle import LifecycleAction, TRANSITIONS
from mosque_directory.modules.admin_accounts.records import (
    REAPPLY_ELIGIBLE_STATUSES,
    AccountStatus,
)

NOW_OFFSET = timedelta(hours=1)


@pytest.fixture
def now(clock):
    return clock() + NOW_OFFSET


# ============================================
# Transition table
# ============================================


def test_table_covers_reapply_for_every_released_status():
    for status in REAPPLY_ELIGIBLE_STATUSES:
        assert TRANSITIONS[(status, LifecycleAction.REAPPLY)].to_status == AccountStatus.PENDING
        assert TRANSITIONS[(status, LifecycleAction.GRANT_REAPPLY)].to_status is None


def test_no_transition_leaves_pending_except_decisions():
    pending_actions = {action for (status, action) in TRANSITIONS if status == AccountStatus.PENDING}
    assert pending_actions == {
        LifecycleAction.APPROVE,
        LifecycleAction.REJECT,
        LifecycleAction.DELETE_INSTITUTION,
    }


@pytest.mark.parametrize(
    "status",
    [
        AccountStatus.APPROVED,
        AccountStatus.REJECTED,
        AccountStatus.REMOVED,
        AccountStatus.INSTITUTION_DELETED,
        AccountStatus.CODE_REGENERATED,
    ],
)
def test_approve_only_from_pending(status, make_account, make_institution, super_admin, now):
    institution = make_institution()
    account = make_account(status.value, institution_id=institution.id)

    with pytest.raises(InvalidTransitionError) as exc_info:
        lifecycle.approve(account, institution, super_admin, now)

    assert exc_info.value.error_code == "INVALID_TRANSITION"
    assert exc_info.value.status_code == 409


def test_admin_cannot_approve_themselves(make_account, make_institution, now):
    institution = make_institution()
    account = make_account("pending", institution_id=institution.id)
    self_actor = Actor(id=account.id, role=ActorRole.ADMIN)

    with pytest.raises(InvalidTransitionError):
        lifecycle.approve(account, institution, self_actor, now)


def test_admin_cannot_act_on_another_account(make_account, make_institution, now):
    institution = make_institution()
    account = make_account("code_regenerated", institution_id=institution.id)
    other = Actor(id=uuid4(), role=ActorRole.ADMIN)

    with pytest.raises(InvalidTransitionError):
        lifecycle.validate_code(account, institution, institution.verification_code, other, now)


# ============================================
# Approve
# ============================================


def test_approve_sets_detail_and_bumps_version(make_account, make_institution, super_admin, now):
    institution = make_institution()
    account = make_account("pending", institution_id=institution.id)

    plan = lifecycle.approve(account, institution, super_admin, now)

    assert plan.action == LifecycleAction.APPROVE
    assert plan.before is account
    assert plan.expected_version == account.version
    assert plan.after.status == AccountStatus.APPROVED
    assert plan.after.detail.approved_by == super_admin.id
    assert plan.after.detail.approved_at == now
    assert plan.after.version == account.version + 1
    assert plan.after.last_transition_at == now


def test_approve_missing_institution(make_account, super_admin, now):
    account = make_account("pending", institution_id=uuid4())

    with pytest.raises(InstitutionNotFoundError):
        lifecycle.approve(account, None, super_admin, now)


def test_approve_claimed_institution(make_account, make_institution, super_admin, now):
    institution = make_institution(admin_id=uuid4())
    account = make_account("pending", institution_id=institution.id)

    with pytest.raises(InstitutionAlreadyClaimedError):
        lifecycle.approve(account, institution, super_admin, now)


# ============================================
# Reject
# ============================================


def test_reject_increments_count_and_records_history(make_account, super_admin, now):
    account = make_account("pending", institution_id=uuid4(), rejection_count=1)

    plan = lifecycle.reject(account, super_admin, now, "  Documents missing  ", "Masjid Al-Noor")

    after = plan.after
    assert after.status == AccountStatus.REJECTED
    assert after.rejection_count == 2
    assert after.banned is False
    assert after.can_reapply is False
    assert after.detail.reason == "Documents missing"
    assert len(after.history) == 1
    assert after.history[0].status == AccountStatus.REJECTED
    assert after.history[0].institution_name == "Masjid Al-Noor"


def test_third_rejection_bans(make_account, super_admin, now):
    account = make_account("pending", institution_id=uuid4(), rejection_count=2)

    plan = lifecycle.reject(account, super_admin, now, "Fraudulent documents")

    assert plan.after.rejection_count == 3
    assert plan.after.banned is True


@pytest.mark.parametrize("reason", ["", "   "])
def test_reject_requires_reason(reason, make_account, super_admin, now):
    account = make_account("pending")

    with pytest.raises(LifecycleValidationError):
        lifecycle.reject(account, super_admin, now, reason)


# ============================================
# Releases
# ============================================


def test_remove_admin_keeps_institution_and_allows_reapply(
    make_account, make_institution, super_admin, now
):
    institution = make_institution()
    account = make_account("approved", institution_id=institution.id)

    plan = lifecycle.remove_admin(account, institution, super_admin, now, "Inactive for a year")

    assert plan.after.status == AccountStatus.REMOVED
    assert plan.after.institution_id == institution.id
    assert plan.after.detail.institution.name == institution.name
    assert plan.after.can_reapply is True
    assert plan.after.rejection_count == account.rejection_count


def test_institution_deleted_clears_institution(make_account, make_institution, super_admin, now):
    institution = make_institution()
    account = make_account("pending", institution_id=institution.id)

    plan = lifecycle.institution_deleted(account, institution, super_admin, now, "Closed down")

    assert plan.after.status == AccountStatus.INSTITUTION_DELETED
    assert plan.after.institution_id is None
    assert plan.after.detail.institution.id == institution.id


def test_release_of_banned_account_does_not_allow_reapply(
    make_account, make_institution, super_admin, now
):
    institution = make_institution()
    account = make_account(
        "approved", institution_id=institution.id, rejection_count=3, banned=True
    )

    plan = lifecycle.remove_admin(account, institution, super_admin, now, "Inactive for a year")

    assert plan.after.can_reapply is False
    assert plan.after.banned is True


def test_system_may_regenerate_code(make_account, make_institution, now):
    institution = make_institution()
    account = make_account("approved", institution_id=institution.id)

    plan = lifecycle.code_regenerated(account, institution, SYSTEM_ACTOR, now, "Expired")

    assert plan.after.status == AccountStatus.CODE_REGENERATED
    assert plan.after.detail.regenerated_by == SYSTEM_ACTOR.id


def test_system_may_not_remove_admin(make_account, make_institution, now):
    institution = make_institution()
    account = make_account("approved", institution_id=institution.id)

    with pytest.raises(InvalidTransitionError):
        lifecycle.remove_admin(account, institution, SYSTEM_ACTOR, now, "Inactive for a year")


# ============================================
# Grant reapply / validate code
# ============================================


def test_grant_reapply_keeps_status(make_account, super_admin, now):
    account = make_account("rejected", rejection_count=1)

    plan = lifecycle.grant_reapply(account, super_admin, now)

    assert plan.after.status == AccountStatus.REJECTED
    assert plan.after.can_reapply is True


def test_grant_reapply_banned_always_fails(make_account, super_admin, now):
    account = make_account("rejected", rejection_count=3, banned=True)

    with pytest.raises(BannedError) as exc_info:
        lifecycle.grant_reapply(account, super_admin, now)

    assert exc_info.value.status_code == 403


def test_grant_reapply_not_from_pending(make_account, super_admin, now):
    with pytest.raises(InvalidTransitionError):
        lifecycle.grant_reapply(make_account("pending"), super_admin, now)


def test_validate_code_restores_approval(make_account, make_institution, now):
    institution = make_institution(code="AB12CD34")
    account = make_account("code_regenerated", institution_id=institution.id)
    actor = Actor(id=account.id, role=ActorRole.ADMIN)

    plan = lifecycle.validate_code(account, institution, " ab12cd34 ", actor, now)

    assert plan.after.status == AccountStatus.APPROVED
    assert plan.after.detail.via_code_validation is True


def test_validate_code_wrong_code(make_account, make_institution, now):
    institution = make_institution(code="AB12CD34")
    account = make_account("code_regenerated", institution_id=institution.id)
    actor = Actor(id=account.id, role=ActorRole.ADMIN)

    with pytest.raises(InvalidVerificationCodeError):
        lifecycle.validate_code(account, institution, "ZZ99ZZ99", actor, now)


def test_validate_code_institution_claimed(make_account, make_institution, now):
    institution = make_institution(code="AB12CD34", admin_id=uuid4())
    account = make_account("code_regenerated", institution_id=institution.id)
    actor = Actor(id=account.id, role=ActorRole.ADMIN)

    with pytest.raises(InstitutionAlreadyClaimedError):
        lifecycle.validate_code(account, institution, "AB12CD34", actor, now)

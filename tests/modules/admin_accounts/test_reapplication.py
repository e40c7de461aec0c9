"""
Tests for the reapplication validator.

The checks run in a fixed order; each test makes every check after the one
under test fail as well, so only the ordering decides which error wins.
"""

from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from mosque_directory.core.auth import Actor, ActorRole
from mosque_directory.modules.admin_accounts import lifecycle, reapplication
from mosque_directory.modules.admin_accounts.errors import (
    BannedError,
    InstitutionAlreadyClaimedError,
    InstitutionNotFoundError,
    InvalidVerificationCodeError,
    ReapplicationNotGrantedError,
    StoreConflict,
    VerificationCodeExpiredError,
)
from mosque_directory.modules.admin_accounts.records import AccountStatus


def _validate(account, institution, code, clock, institution_id=None):
    return reapplication.validate(
        account,
        institution,
        code,
        institution_id=institution_id or (institution.id if institution else uuid4()),
        now=clock(),
    )


def test_banned_checked_first(make_account, make_institution, clock):
    account = make_account("rejected", rejection_count=3, banned=True, can_reapply=False)
    claimed = make_institution(admin_id=uuid4())

    with pytest.raises(BannedError):
        _validate(account, claimed, "WRONG", clock)


def test_not_granted_checked_second(make_account, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=False)

    with pytest.raises(ReapplicationNotGrantedError):
        _validate(account, None, "WRONG", clock)


def test_missing_institution_checked_third(make_account, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=True)

    with pytest.raises(InstitutionNotFoundError) as exc_info:
        _validate(account, None, "WRONG", clock)

    assert exc_info.value.status_code == 404


def test_claimed_institution_checked_fourth(make_account, make_institution, clock):
    account = make_account("removed", can_reapply=True)
    claimed = make_institution(admin_id=uuid4())

    with pytest.raises(InstitutionAlreadyClaimedError):
        _validate(account, claimed, "WRONG", clock)


def test_pending_claimant_blocks_reapply(make_account, make_institution, clock):
    account = make_account("removed", can_reapply=True)
    institution = make_institution()

    with pytest.raises(InstitutionAlreadyClaimedError):
        reapplication.validate(
            account,
            institution,
            institution.verification_code,
            institution_id=institution.id,
            now=clock(),
            has_pending_claimant=True,
        )


def test_wrong_code_checked_last(make_account, make_institution, clock):
    account = make_account("institution_deleted", can_reapply=True)

    with pytest.raises(InvalidVerificationCodeError):
        _validate(account, make_institution(), "WRONG", clock)


def test_success_returns_grant_bound_to_versions(make_account, make_institution, clock):
    account = make_account("code_regenerated", can_reapply=True)
    institution = make_institution()

    grant = _validate(account, institution, institution.verification_code.lower(), clock)

    assert grant.account_id == account.id
    assert grant.account_version == account.version
    assert grant.institution_id == institution.id
    assert grant.institution_version == institution.version
    assert grant.consumed is False


def test_grant_is_single_use(make_account, make_institution, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=True)
    institution = make_institution()
    grant = _validate(account, institution, institution.verification_code, clock)

    grant.consume(account, institution)

    assert grant.consumed is True
    with pytest.raises(RuntimeError):
        grant.consume(account, institution)


def test_grant_rejects_other_institution(make_account, make_institution, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=True)
    institution = make_institution()
    grant = _validate(account, institution, institution.verification_code, clock)

    with pytest.raises(ValueError):
        grant.consume(account, make_institution())


def test_grant_detects_changed_institution(make_account, make_institution, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=True)
    institution = make_institution()
    grant = _validate(account, institution, institution.verification_code, clock)

    changed = institution.with_new_code("NEWCODE1", clock(), 30)

    with pytest.raises(StoreConflict):
        grant.consume(account, replace(changed, version=institution.version + 1))


def test_reapply_transition_consumes_grant(make_account, make_institution, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=True)
    institution = make_institution()
    grant = _validate(account, institution, institution.verification_code, clock)
    actor = Actor(id=account.id, role=ActorRole.ADMIN)

    plan = lifecycle.reapply(account, institution, grant, actor, clock(), notes="Second try")

    assert grant.consumed is True
    assert plan.after.status == AccountStatus.PENDING
    assert plan.after.detail.is_reapplication is True
    assert plan.after.detail.notes == "Second try"
    assert plan.after.institution_id == institution.id
    assert plan.after.can_reapply is False
    assert plan.after.rejection_count == 1


def test_expired_code_rejected_after_match(make_account, make_institution, clock):
    account = make_account("rejected", rejection_count=1, can_reapply=True)
    institution = make_institution()
    later = clock() + timedelta(days=60)

    with pytest.raises(InvalidVerificationCodeError):
        reapplication.validate(
            account, institution, "WRONG", institution_id=institution.id, now=later
        )
    with pytest.raises(VerificationCodeExpiredError) as exc_info:
        reapplication.validate(
            account, institution, "xj4k9qrt", institution_id=institution.id, now=later
        )

    assert exc_info.value.error_code == "VERIFICATION_CODE_EXPIRED"
    assert exc_info.value.status_code == 400

"""
Reapplication Validator

Checks whether an account may reapply for a target institution. The checks
run in a fixed order and the first failure wins:

1. the account is banned                      -> BannedError
2. reapplication has not been granted         -> ReapplicationNotGrantedError
3. the institution does not exist             -> InstitutionNotFoundError
4. the institution has an approved admin or
   another pending claimant                   -> InstitutionAlreadyClaimedError
5. the code does not match the current code   -> InvalidVerificationCodeError
   or matches but has expired                 -> VerificationCodeExpiredError

A successful validation returns a single-use ``ReapplicationGrant`` bound to
the exact account and institution versions that were checked. The Reapply
transition consumes the grant and the store re-verifies both versions in the
same write, so nothing can change between validation and commit unnoticed.
"""

import logging
from datetime import datetime
from uuid import UUID

from mosque_directory.modules.institutions.records import Institution, codes_match

from .errors import (
    BannedError,
    InstitutionAlreadyClaimedError,
    InstitutionNotFoundError,
    InvalidVerificationCodeError,
    ReapplicationNotGrantedError,
    StoreConflict,
    VerificationCodeExpiredError,
)
from .records import AdminAccount

logger = logging.getLogger(__name__)


class ReapplicationGrant:
    """Capability to perform exactly one Reapply transition."""

    def __init__(
        self,
        account_id: UUID,
        account_version: int,
        institution_id: UUID,
        institution_version: int,
        issued_at: datetime,
    ):
        self.account_id = account_id
        self.account_version = account_version
        self.institution_id = institution_id
        self.institution_version = institution_version
        self.issued_at = issued_at
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def consume(self, account: AdminAccount, institution: Institution) -> None:
        """
        Spend the grant for the given account and institution.

        Raises:
            RuntimeError: If the grant was already used
            ValueError: If the grant was issued for a different account or institution
            StoreConflict: If either record changed since the grant was issued
        """
        if self._consumed:
            raise RuntimeError("Reapplication grant has already been used")
        if account.id != self.account_id or institution.id != self.institution_id:
            raise ValueError("Reapplication grant does not belong to this account/institution")
        if (
            account.version != self.account_version
            or institution.version != self.institution_version
        ):
            raise StoreConflict(
                f"Account {account.id} or institution {institution.id} changed after validation"
            )
        self._consumed = True


def validate(
    admin: AdminAccount,
    target_institution: Institution | None,
    submitted_code: str,
    *,
    institution_id: UUID,
    now: datetime,
    has_pending_claimant: bool = False,
) -> ReapplicationGrant:
    """
    Run the five reapplication checks in order.

    Args:
        admin: The account that wants to reapply
        target_institution: The institution as currently stored, or None if it does not exist
        submitted_code: Code supplied by the applicant
        institution_id: The requested institution id (used when the lookup failed)
        now: Current time, checked against the code expiry and recorded on the grant
        has_pending_claimant: Whether another account is already Pending on the institution

    Returns:
        A single-use grant for the Reapply transition
    """
    if admin.banned:
        raise BannedError(admin.id)

    if not admin.can_reapply:
        raise ReapplicationNotGrantedError(admin.id)

    if target_institution is None:
        raise InstitutionNotFoundError(institution_id)

    if target_institution.is_claimed or has_pending_claimant:
        raise InstitutionAlreadyClaimedError(target_institution.id)

    if not codes_match(submitted_code, target_institution.verification_code):
        logger.info(f"Verification code mismatch for account {admin.id} on {target_institution.id}")
        raise InvalidVerificationCodeError()

    if target_institution.is_code_expired(now):
        logger.info(f"Expired verification code presented by account {admin.id}")
        raise VerificationCodeExpiredError()

    return ReapplicationGrant(
        account_id=admin.id,
        account_version=admin.version,
        institution_id=target_institution.id,
        institution_version=target_institution.version,
        issued_at=now,
    )

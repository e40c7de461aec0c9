"""
Lifecycle notifications.

The service tells a ``LifecycleNotifier`` about each completed transition.
Delivery is best effort and happens after the audit entry is written.
"""

import logging
from typing import Protocol

from mosque_directory.core import email
from mosque_directory.modules.institutions.records import Institution

from .lifecycle import LifecycleAction
from .records import AdminAccount

logger = logging.getLogger(__name__)


class LifecycleNotifier(Protocol):
    async def application_received(
        self, account: AdminAccount, institution: Institution, is_reapplication: bool
    ) -> None: ...

    async def transitioned(
        self,
        action: LifecycleAction,
        account: AdminAccount,
        institution_name: str | None,
        reason: str | None,
    ) -> None: ...


class EmailLifecycleNotifier:
    """Sends lifecycle emails through Resend."""

    async def application_received(
        self, account: AdminAccount, institution: Institution, is_reapplication: bool
    ) -> None:
        await email.send_application_received(
            to_email=account.email,
            admin_name=account.name,
            institution_name=institution.name,
            is_reapplication=is_reapplication,
        )

    async def transitioned(
        self,
        action: LifecycleAction,
        account: AdminAccount,
        institution_name: str | None,
        reason: str | None,
    ) -> None:
        institution_name = institution_name or "your institution"
        reason = reason or ""

        if action in (LifecycleAction.APPROVE, LifecycleAction.VALIDATE_CODE):
            await email.send_admin_approved(account.email, account.name, institution_name)
        elif action == LifecycleAction.REJECT:
            await email.send_admin_rejected(
                account.email, account.name, reason, account.rejection_count, account.banned
            )
        elif action == LifecycleAction.REMOVE_ADMIN:
            await email.send_admin_removed(account.email, account.name, institution_name, reason)
        elif action == LifecycleAction.DELETE_INSTITUTION:
            await email.send_institution_deleted(
                account.email, account.name, institution_name, reason
            )
        elif action == LifecycleAction.REGENERATE_CODE:
            await email.send_code_regenerated(account.email, account.name, institution_name, reason)
        elif action == LifecycleAction.GRANT_REAPPLY:
            await email.send_reapplication_granted(account.email, account.name, reason or None)
        else:
            logger.debug(f"No notification for action {action.value}")

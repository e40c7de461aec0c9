"""Tests for the email lifecycle notifier."""

from unittest.mock import AsyncMock

import pytest

from mosque_directory.core import email
from mosque_directory.modules.admin_accounts.lifecycle import LifecycleAction
from mosque_directory.modules.admin_accounts.notifications import EmailLifecycleNotifier

SENDERS = (
    "send_application_received",
    "send_admin_approved",
    "send_admin_rejected",
    "send_admin_removed",
    "send_institution_deleted",
    "send_code_regenerated",
    "send_reapplication_granted",
)


@pytest.fixture
def senders(monkeypatch):
    mocks = {name: AsyncMock(return_value=True) for name in SENDERS}
    for name, mock in mocks.items():
        monkeypatch.setattr(email, name, mock)
    return mocks


@pytest.mark.asyncio
async def test_application_received(senders, make_account, make_institution):
    account = make_account("pending")
    institution = make_institution()

    await EmailLifecycleNotifier().application_received(account, institution, True)

    senders["send_application_received"].assert_awaited_once_with(
        to_email=account.email,
        admin_name=account.name,
        institution_name="Masjid Al-Noor",
        is_reapplication=True,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "action,sender",
    [
        (LifecycleAction.APPROVE, "send_admin_approved"),
        (LifecycleAction.VALIDATE_CODE, "send_admin_approved"),
        (LifecycleAction.REMOVE_ADMIN, "send_admin_removed"),
        (LifecycleAction.DELETE_INSTITUTION, "send_institution_deleted"),
        (LifecycleAction.REGENERATE_CODE, "send_code_regenerated"),
    ],
)
async def test_transition_picks_sender(senders, make_account, action, sender):
    account = make_account("approved")

    await EmailLifecycleNotifier().transitioned(action, account, "Masjid Al-Noor", "Reason")

    senders[sender].assert_awaited_once()
    assert senders[sender].await_args.args[:2] == (account.email, account.name)


@pytest.mark.asyncio
async def test_rejection_carries_ban_state(senders, make_account):
    account = make_account("rejected", rejection_count=3, banned=True)

    await EmailLifecycleNotifier().transitioned(
        LifecycleAction.REJECT, account, None, "Fraudulent documents"
    )

    senders["send_admin_rejected"].assert_awaited_once_with(
        account.email, account.name, "Fraudulent documents", 3, True
    )


@pytest.mark.asyncio
async def test_missing_institution_name(senders, make_account):
    account = make_account("removed")

    await EmailLifecycleNotifier().transitioned(LifecycleAction.REMOVE_ADMIN, account, None, None)

    senders["send_admin_removed"].assert_awaited_once_with(
        account.email, account.name, "your institution", ""
    )


@pytest.mark.asyncio
async def test_reapply_sends_nothing(senders, make_account):
    account = make_account("pending")

    await EmailLifecycleNotifier().transitioned(LifecycleAction.REAPPLY, account, None, None)

    assert not any(mock.await_count for mock in senders.values())

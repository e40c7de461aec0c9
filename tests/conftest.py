"""
Shared test fixtures.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mosque_directory.core.auth import Actor, ActorRole
from mosque_directory.core.rate_limit import reset_memory_store
from mosque_directory.core.security import create_access_token
from mosque_directory.main import app
from mosque_directory.modules.admin_accounts.dependencies import (
    get_audit_service,
    get_lifecycle_service,
)
from mosque_directory.modules.admin_accounts.service import LifecycleService
from mosque_directory.modules.admin_accounts.store import InMemoryLifecycleStore
from mosque_directory.modules.audit.service import AuditLogService

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Rate limit state is module-global; start every test clean."""
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def store():
    return InMemoryLifecycleStore()


@pytest.fixture
def super_admin():
    return Actor(id=uuid4(), role=ActorRole.SUPER_ADMIN, name="Super Admin")


# ============================================
# HTTP fixtures
# ============================================


@pytest.fixture
def lifecycle_service(store, clock):
    return LifecycleService(store, clock=clock, timeout_seconds=2.0, code_ttl_days=30)


@pytest.fixture
def audit_log_service(store, clock):
    return AuditLogService(store, clock=clock, timeout_seconds=2.0)


@pytest_asyncio.fixture
async def client(lifecycle_service, audit_log_service):
    """HTTP client bound to the app, with services backed by the in-memory store."""
    app.dependency_overrides[get_lifecycle_service] = lambda: lifecycle_service
    app.dependency_overrides[get_audit_service] = lambda: audit_log_service
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as http_client:
            yield http_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def super_admin_headers(super_admin):
    token = create_access_token(str(super_admin.id), "super_admin", name=super_admin.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def applicant_headers():
    """Build bearer headers for an applicant account id."""

    def _make(account_id):
        token = create_access_token(str(account_id), "admin")
        return {"Authorization": f"Bearer {token}"}

    return _make

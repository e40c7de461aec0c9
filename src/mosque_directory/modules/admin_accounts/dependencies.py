"""
Service dependencies

Builds the lifecycle store and services once per process, choosing the
store backend from ``settings.store_backend``.
"""

import logging
from functools import lru_cache

from mosque_directory.core.config import settings
from mosque_directory.core.database import async_session_maker
from mosque_directory.modules.audit.service import AuditLogService

from .notifications import EmailLifecycleNotifier
from .service import LifecycleService
from .sql_store import SqlAlchemyLifecycleStore
from .store import InMemoryLifecycleStore, LifecycleStore

logger = logging.getLogger(__name__)


@lru_cache
def get_lifecycle_store() -> LifecycleStore:
    if settings.store_backend == "memory":
        logger.warning("Using in-memory lifecycle store; data is lost on restart")
        return InMemoryLifecycleStore()
    return SqlAlchemyLifecycleStore(async_session_maker)


@lru_cache
def get_lifecycle_service() -> LifecycleService:
    return LifecycleService(get_lifecycle_store(), notifier=EmailLifecycleNotifier())


@lru_cache
def get_audit_service() -> AuditLogService:
    return AuditLogService(get_lifecycle_store())

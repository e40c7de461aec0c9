"""
Audit Recorder

Appends one immutable AuditEntry per state-changing call. Recording never
raises: a failure to persist an entry is logged at CRITICAL level and handed
to the optional alert hook, and the caller's own result stands.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from mosque_directory.core.auth import Actor

from .records import AuditActionType, AuditEntry, AuditOutcome, AuditTarget

if TYPE_CHECKING:
    from mosque_directory.modules.admin_accounts.store import LifecycleStore

logger = logging.getLogger(__name__)

AlertHook = Callable[[AuditEntry, BaseException], Awaitable[None] | None]


class AuditRecorder:
    """Writes audit entries to the lifecycle store."""

    def __init__(
        self,
        store: "LifecycleStore",
        clock: Callable[[], datetime],
        id_factory: Callable[[], UUID],
        *,
        timeout_seconds: float | None = None,
        alert_hook: AlertHook | None = None,
    ):
        self._store = store
        self._clock = clock
        self._id_factory = id_factory
        self._timeout_seconds = timeout_seconds
        self._alert_hook = alert_hook

    async def record(
        self,
        action_type: AuditActionType,
        actor: Actor,
        target: AuditTarget,
        details: dict[str, Any] | None,
        outcome: AuditOutcome,
        error_code: str | None = None,
    ) -> AuditEntry | None:
        """
        Append an audit entry.

        Returns:
            The stored entry, or None if it could not be persisted
        """
        entry = AuditEntry(
            id=self._id_factory(),
            action_type=action_type,
            actor_id=actor.id,
            actor_role=actor.role,
            actor_name=actor.name,
            target_type=target.type,
            target_id=target.id,
            target_name=target.name,
            details=dict(details or {}),
            timestamp=self._clock(),
            outcome=outcome,
            error_code=error_code,
        )

        try:
            write = self._store.append_audit(entry)
            if self._timeout_seconds is not None:
                await asyncio.wait_for(write, timeout=self._timeout_seconds)
            else:
                await write
        except Exception as e:
            await self._escalate(entry, e)
            return None

        logger.debug(
            f"Audit: {entry.action_type.value} by {entry.actor_role.value}:{entry.actor_id} "
            f"on {entry.target_type.value}:{entry.target_id} -> {entry.outcome.value}"
        )
        return entry

    async def _escalate(self, entry: AuditEntry, error: BaseException) -> None:
        logger.critical(
            f"AUDIT WRITE FAILED for {entry.action_type.value} "
            f"(target {entry.target_type.value}:{entry.target_id}, outcome {entry.outcome.value}): "
            f"{error}",
            exc_info=error,
        )
        if self._alert_hook is None:
            return
        try:
            result = self._alert_hook(entry, error)
            if asyncio.iscoroutine(result):
                await result
        except Exception as hook_error:
            logger.critical(f"Audit alert hook failed: {hook_error}", exc_info=True)

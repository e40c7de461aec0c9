"""
Institution records and verification code helpers.

Records are immutable snapshots handed between the lifecycle store and the
service layer; updates produce new records via ``dataclasses.replace``.
"""

import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from uuid import UUID

VERIFICATION_CODE_BYTES = 8  # 16 hex characters


@dataclass(frozen=True)
class Institution:
    """A mosque listed in the directory."""

    id: UUID
    name: str
    location: str
    verification_code: str
    verification_code_expires_at: datetime
    created_at: datetime
    updated_at: datetime
    admin_id: UUID | None = None
    description: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    version: int = 1

    @property
    def is_claimed(self) -> bool:
        return self.admin_id is not None

    def is_code_expired(self, now: datetime) -> bool:
        return self.verification_code_expires_at <= now

    def with_new_code(self, code: str, now: datetime, ttl_days: int) -> "Institution":
        """Replace the verification code, releasing any current admin."""
        return replace(
            self,
            verification_code=code,
            verification_code_expires_at=now + timedelta(days=ttl_days),
            admin_id=None,
            updated_at=now,
        )


def generate_verification_code() -> str:
    """Generate a new opaque verification code."""
    return secrets.token_hex(VERIFICATION_CODE_BYTES).upper()


def normalize_code(code: str) -> str:
    return code.strip().upper()


def codes_match(submitted: str, current: str) -> bool:
    """Compare a submitted code with the current one, ignoring case and surrounding whitespace."""
    return secrets.compare_digest(
        normalize_code(submitted).encode("utf-8"), normalize_code(current).encode("utf-8")
    )


def mask_code(code: str) -> str:
    """Mask a verification code for logging."""
    if len(code) <= 4:
        return "****"
    return f"{code[:2]}{'*' * (len(code) - 4)}{code[-2:]}"

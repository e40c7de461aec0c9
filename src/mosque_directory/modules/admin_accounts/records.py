"""
Admin Account Records

``AdminAccount`` is an immutable snapshot of one applicant/administrator.
Its status is not a free-standing field: it is the discriminant of
``detail``, a tagged variant that carries exactly the data relevant to the
current status (who approved, why it was rejected, which institution was
deleted, ...).
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class AccountStatus(str, enum.Enum):
    """Lifecycle status of an admin account."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    INSTITUTION_DELETED = "institution_deleted"
    REMOVED = "removed"
    CODE_REGENERATED = "code_regenerated"


# Statuses from which an account may be granted reapplication and may reapply
REAPPLY_ELIGIBLE_STATUSES: frozenset[AccountStatus] = frozenset(
    {
        AccountStatus.REJECTED,
        AccountStatus.REMOVED,
        AccountStatus.INSTITUTION_DELETED,
        AccountStatus.CODE_REGENERATED,
    }
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class InstitutionSnapshot(_Frozen):
    """Copy of an institution's identifying fields at the time of an event."""

    id: UUID
    name: str
    location: str


class PendingDetail(_Frozen):
    status: Literal["pending"] = "pending"
    submitted_at: datetime
    is_reapplication: bool = False
    notes: str | None = None


class ApprovedDetail(_Frozen):
    status: Literal["approved"] = "approved"
    approved_at: datetime
    approved_by: UUID
    via_code_validation: bool = False


class RejectedDetail(_Frozen):
    status: Literal["rejected"] = "rejected"
    rejected_at: datetime
    rejected_by: UUID
    reason: str


class InstitutionDeletedDetail(_Frozen):
    status: Literal["institution_deleted"] = "institution_deleted"
    institution: InstitutionSnapshot
    deleted_at: datetime
    deleted_by: UUID
    reason: str


class RemovedDetail(_Frozen):
    status: Literal["removed"] = "removed"
    institution: InstitutionSnapshot
    removed_at: datetime
    removed_by: UUID
    reason: str


class CodeRegeneratedDetail(_Frozen):
    status: Literal["code_regenerated"] = "code_regenerated"
    institution: InstitutionSnapshot
    regenerated_at: datetime
    regenerated_by: UUID
    reason: str


StatusDetail = Annotated[
    PendingDetail
    | ApprovedDetail
    | RejectedDetail
    | InstitutionDeletedDetail
    | RemovedDetail
    | CodeRegeneratedDetail,
    Field(discriminator="status"),
]

_status_detail_adapter: TypeAdapter[StatusDetail] = TypeAdapter(StatusDetail)


def parse_status_detail(data: dict[str, Any]) -> StatusDetail:
    """Parse a stored status detail payload."""
    return _status_detail_adapter.validate_python(data)


def dump_status_detail(detail: StatusDetail) -> dict[str, Any]:
    """Serialize a status detail to JSON-compatible data."""
    return detail.model_dump(mode="json")


class HistoryEntry(_Frozen):
    """One past episode (rejection, removal, deletion, code regeneration)."""

    status: AccountStatus
    institution_id: UUID | None
    institution_name: str | None
    reason: str
    timestamp: datetime


@dataclass(frozen=True)
class AdminAccount:
    """An applicant's admin account."""

    id: UUID
    name: str
    email: str
    phone: str
    detail: StatusDetail
    created_at: datetime
    last_transition_at: datetime
    institution_id: UUID | None = None
    rejection_count: int = 0
    can_reapply: bool = False
    banned: bool = False
    history: tuple[HistoryEntry, ...] = ()
    version: int = 1

    @property
    def status(self) -> AccountStatus:
        return AccountStatus(self.detail.status)

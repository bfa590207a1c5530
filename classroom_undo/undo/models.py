"""
Data models for the action history and undo.

An ``UndoableAction`` records one completed mutation together with what is
needed to reverse it and the moment the reversal stops being allowed.
"""

import secrets
import string
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

import pytz
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from ..soft_delete.models import ENTITY_LABELS, EntityKind, OperationResult

StateRecord = Dict[str, Any]

_ID_ALPHABET = string.digits + string.ascii_lowercase


class ActionType(str, Enum):
    """Mutations that can be recorded and undone."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK_DELETE = "bulk_delete"


_ACTION_VERBS: Dict[ActionType, str] = {
    ActionType.DELETE: "Menghapus",
    ActionType.BULK_DELETE: "Menghapus",
    ActionType.UPDATE: "Memperbarui",
    ActionType.CREATE: "Membuat",
}


def describe_action(
    action_type: Union[ActionType, str], entity: Union[EntityKind, str], count: int
) -> str:
    """
    Build the human-readable summary of an action, e.g. ``Menghapus 3 siswa``.

    Args:
        action_type: Kind of mutation
        entity: Entity kind the mutation applied to
        count: Number of affected records

    Returns:
        Summary in Indonesian
    """
    try:
        labels = ENTITY_LABELS[EntityKind(entity)]
        entity_name = labels["plural"] if count > 1 else labels["singular"]
    except ValueError:
        entity_name = str(entity)

    try:
        verb = _ACTION_VERBS[ActionType(action_type)]
    except ValueError:
        verb = str(action_type)

    return f"{verb} {count} {entity_name}"


def generate_action_id(now: datetime) -> str:
    """Generate an action ID such as ``action_1738915200000_k3j9x0a1q``."""
    millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"action_{millis}_{suffix}"


class UndoableAction(BaseModel):
    """One completed mutation that may be reversed until ``expires_at``."""

    id: str = Field(..., description="Unique action identifier")
    owner_id: str = Field(..., description="Teacher who performed the action")
    action_type: ActionType = Field(..., description="Kind of mutation")
    entity: EntityKind = Field(..., description="Table the mutation applied to")
    entity_ids: List[str] = Field(
        ..., description="Affected record IDs, in order", min_length=1
    )
    previous_state: Optional[List[StateRecord]] = Field(
        None, description="Snapshot per affected ID, taken before the mutation"
    )
    created_at: datetime = Field(..., description="When the action was recorded")
    expires_at: datetime = Field(..., description="Last moment undo is allowed")
    undone: bool = Field(False, description="Whether the action has been undone")
    description: str = Field(..., description="Human-readable summary")

    @field_validator("previous_state")
    @classmethod
    def validate_snapshot_count(
        cls, v: Optional[List[StateRecord]], info: ValidationInfo
    ) -> Optional[List[StateRecord]]:
        """Ensure there is never more than one snapshot per affected ID."""
        if v is not None and "entity_ids" in info.data:
            if len(v) > len(info.data["entity_ids"]):
                raise ValueError("More snapshots than affected IDs")
        return v

    def is_expired(self, now: datetime) -> bool:
        """The window is inclusive: undo at exactly ``expires_at`` still works."""
        return now > self.expires_at

    def can_undo(self, now: datetime) -> bool:
        return not self.undone and not self.is_expired(now)

    def time_remaining_ms(self, now: datetime) -> int:
        if self.undone:
            return 0
        remaining = (self.expires_at - now).total_seconds() * 1000
        return max(0, int(remaining))


class ActionHistoryItem(BaseModel):
    """One row of the action history page."""

    id: str
    action_type: ActionType
    entity: EntityKind
    entity_ids: List[str]
    description: str
    created_at: datetime
    expires_at: datetime
    can_undo: bool = Field(
        ..., description="Undo flag still set and window not yet passed"
    )
    previous_state: Optional[List[StateRecord]] = None


class ActionHistoryFilters(BaseModel):
    """Filters for the action history page."""

    action_type: Optional[Union[ActionType, Literal["all"]]] = Field(
        None, description="Only this kind of mutation"
    )
    entity: Optional[Union[EntityKind, Literal["all"]]] = Field(
        None, description="Only this entity kind"
    )
    start_date: Optional[date] = Field(
        None, description="Actions recorded on or after this day"
    )
    end_date: Optional[date] = Field(
        None, description="Actions recorded on or before this day (whole day)"
    )
    search: Optional[str] = Field(
        None, description="Case-insensitive match on the description"
    )
    day_timezone: str = Field(
        "UTC", description="Timezone in which start and end dates are whole days"
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def strip_time(cls, v: Any) -> Any:
        """Accept datetimes and keep only their day."""
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("end_date")
    @classmethod
    def validate_date_range(
        cls, v: Optional[date], info: ValidationInfo
    ) -> Optional[date]:
        """Ensure end date is not before start date."""
        if v and info.data.get("start_date"):
            if v < info.data["start_date"]:
                raise ValueError("End date must be after start date")
        return v

    @field_validator("day_timezone")
    @classmethod
    def validate_day_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    def day_start(self, day: date) -> datetime:
        """Local midnight of ``day`` as a naive UTC timestamp."""
        local = pytz.timezone(self.day_timezone).localize(
            datetime.combine(day, time.min)
        )
        return local.astimezone(pytz.utc).replace(tzinfo=None)


class ActionHistoryPage(BaseModel):
    """One page of action history plus the unpaginated total."""

    items: List[ActionHistoryItem] = Field(default_factory=list)
    total: int = 0


class UndoResult(OperationResult):
    action_id: Optional[str] = None


class ActionPurgeResult(OperationResult):
    deleted: int = Field(0, description="Ledger rows removed")

"""
Data models for soft delete operations.

These models define the entity kinds, the typed payloads shown in the trash
and the result values every store operation returns.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """Tables that support soft delete."""

    STUDENTS = "students"
    CLASSES = "classes"
    ATTENDANCE = "attendance"
    TASKS = "tasks"


# Labels shown to teachers (Indonesian), singular and plural
ENTITY_LABELS: Dict[EntityKind, Dict[str, str]] = {
    EntityKind.STUDENTS: {"singular": "siswa", "plural": "siswa"},
    EntityKind.CLASSES: {"singular": "kelas", "plural": "kelas"},
    EntityKind.ATTENDANCE: {"singular": "absensi", "plural": "absensi"},
    EntityKind.TASKS: {"singular": "tugas", "plural": "tugas"},
}


class _RecordData(BaseModel):
    """Common fields of every soft-deletable record."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    created_at: Optional[datetime] = None


class StudentData(_RecordData):
    kind: Literal["students"] = "students"
    name: str
    class_id: str
    avatar_url: str = ""
    gender: Literal["Laki-laki", "Perempuan"]
    access_code: Optional[str] = None
    parent_phone: Optional[str] = None


class ClassData(_RecordData):
    kind: Literal["classes"] = "classes"
    name: str


class AttendanceData(_RecordData):
    kind: Literal["attendance"] = "attendance"
    student_id: str
    date: date
    status: Literal["Hadir", "Izin", "Sakit", "Alpha"]
    notes: Optional[str] = None


class TaskData(_RecordData):
    kind: Literal["tasks"] = "tasks"
    title: str
    description: Optional[str] = None
    due_date: Optional[date] = None
    status: Literal["todo", "in_progress", "done"] = "todo"


class RawRecordData(BaseModel):
    """Column values of a record that does not fit its typed payload."""

    kind: Literal["raw"] = "raw"
    entity: EntityKind
    values: Dict[str, Any] = Field(default_factory=dict)


RecordData = Annotated[
    Union[StudentData, ClassData, AttendanceData, TaskData, RawRecordData],
    Field(discriminator="kind"),
]

PAYLOAD_MODELS: Dict[EntityKind, type] = {
    EntityKind.STUDENTS: StudentData,
    EntityKind.CLASSES: ClassData,
    EntityKind.ATTENDANCE: AttendanceData,
    EntityKind.TASKS: TaskData,
}


def validate_payload(entity: EntityKind, values: Dict[str, Any]) -> Any:
    """
    Validate raw column values into the payload model of ``entity``.

    Args:
        entity: Kind of record
        values: Column values (``deleted_at`` and unknown columns are ignored)

    Returns:
        The typed payload

    Raises:
        ValidationError: If a value does not fit the payload model
    """
    model = PAYLOAD_MODELS[entity]
    return model.model_validate({**values, "kind": entity.value})


def build_payload(entity: EntityKind, values: Dict[str, Any]) -> Any:
    """Typed payload of ``entity``, or a ``RawRecordData`` if validation fails."""
    try:
        return validate_payload(entity, values)
    except ValidationError as e:
        logger.warning(
            f"{entity.value} record {values.get('id')} kept as raw data: "
            f"{e.error_count()} invalid field(s)"
        )
        return RawRecordData(entity=entity, values=values)


class DeletedItem(BaseModel):
    """A record currently sitting in the trash."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="ID of the trashed record")
    entity: EntityKind = Field(..., description="Table the record belongs to")
    deleted_at: datetime = Field(..., description="When the record was trashed")
    days_remaining: int = Field(
        ..., description="Whole days before permanent purge", ge=0
    )
    data: RecordData = Field(..., description="Typed snapshot of the record")


class OperationResult(BaseModel):
    """Outcome of a store operation. Callers branch on ``success``."""

    success: bool
    error: Optional[str] = None


class SoftDeleteResult(OperationResult):
    deleted_at: Optional[datetime] = None


class PurgeResult(OperationResult):
    """Outcome of a hard delete across one or more entity kinds."""

    deleted_counts: Dict[str, int] = Field(
        default_factory=lambda: {kind.value: 0 for kind in EntityKind},
        description="Rows removed per entity kind",
    )
    failed_entities: List[str] = Field(
        default_factory=list, description="Entity kinds whose purge failed"
    )

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted_counts.values())


class TrashSummary(BaseModel):
    """Counters shown at the top of the trash page."""

    total: int = 0
    by_entity: Dict[str, int] = Field(
        default_factory=lambda: {kind.value: 0 for kind in EntityKind}
    )
    expiring_today: int = Field(0, description="Items with at most 1 day left")
    expiring_this_week: int = Field(0, description="Items with at most 7 days left")

    def add_item(self, item: DeletedItem) -> None:
        """Add a trashed item to the counters."""
        self.total += 1
        entity = item.entity if isinstance(item.entity, str) else item.entity.value
        self.by_entity[entity] = self.by_entity.get(entity, 0) + 1

        if item.days_remaining <= 1:
            self.expiring_today += 1
        if item.days_remaining <= 7:
            self.expiring_this_week += 1

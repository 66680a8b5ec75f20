from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union, get_args
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidDateKey
from .settings import get_settings


SetStructure = Literal["normal", "superset", "triset", "dropSet", "restPause"]

SET_STRUCTURE_OPTIONS: Tuple[str, ...] = get_args(SetStructure)

SET_STRUCTURE_LABEL: Dict[str, str] = {
    "normal": "Normal",
    "superset": "Superset",
    "triset": "Triset",
    "dropSet": "Drop Set",
    "restPause": "Rest-Pause",
}

MuscleGroup = Literal["Chest", "Back", "Legs", "Shoulders", "Biceps", "Triceps", "Abs", "Cardio", "Other"]

MUSCLE_GROUPS: Tuple[str, ...] = get_args(MuscleGroup)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "exercise"


def date_key(value: Union[str, date, datetime]) -> str:
    """Canonical ``YYYY-MM-DD`` key for a calendar date."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value)
    try:
        parsed = date.fromisoformat(text)
    except ValueError:
        raise InvalidDateKey(value) from None
    if len(text) != 10:
        raise InvalidDateKey(value)
    return parsed.isoformat()


def date_key_to_epoch_ms(key: str) -> int:
    day = date.fromisoformat(date_key(key))
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp() * 1000)


def epoch_ms_to_date_key(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date().isoformat()


def strip_empty(value: Any) -> Any:
    """Recursively drop ``None`` values from dicts (and dicts nested in lists).

    This is the single place where absent optional fields are normalised
    before a document is written.
    """
    if isinstance(value, dict):
        return {k: strip_empty(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_empty(v) for v in value]
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExerciseDefinition(CamelModel):
    id: str
    name: str
    muscle_group: MuscleGroup = "Other"
    exercise_setup: Optional[str] = Field(default=None, alias="setup")
    target_notes: Optional[str] = None


class RoutineSlot(CamelModel):
    exercise_id: str
    name: str = ""
    muscle_group: str = "Other"
    exercise_setup: Optional[str] = Field(default=None, alias="setup")
    position: int = 0
    set_structure_override: Optional[SetStructure] = None


class Routine(CamelModel):
    id: str
    name: str
    description: str = ""
    slots: List[RoutineSlot] = []

    def ordered_slots(self) -> List[RoutineSlot]:
        return sorted(self.slots, key=lambda s: s.position)


class LoggedSet(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=lambda: new_id("set"))
    reps: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    is_provisional: bool = False

    @field_validator("weight")
    @classmethod
    def _snap_weight(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        step = get_settings().weight_increment
        return round(value / step) * step

    def to_document(self) -> Dict[str, Any]:
        return {"id": self.id, "reps": self.reps or 0, "weight": self.weight or 0}


class LoggedExercise(CamelModel):
    id: str = Field(default_factory=lambda: new_id("logex"))
    exercise_id: str
    name: str = ""
    muscle_group: str = "Other"
    exercise_setup: Optional[str] = Field(default=None, alias="setup")
    notes: str = ""
    sets: List[LoggedSet] = []
    set_structure: Optional[SetStructure] = None
    set_structure_override: Optional[SetStructure] = None
    is_provisional: bool = False
    personal_record_display: Optional[str] = None

    @property
    def effective_structure(self) -> str:
        return self.set_structure_override or self.set_structure or "normal"

    def is_blank(self) -> bool:
        return not self.sets and not self.notes

    def to_document(self) -> Dict[str, Any]:
        return strip_empty(
            {
                "id": self.id,
                "exerciseId": self.exercise_id,
                "name": self.name,
                "muscleGroup": self.muscle_group,
                "setup": self.exercise_setup,
                "notes": self.notes or "",
                "setStructure": self.set_structure,
                "setStructureOverride": self.set_structure_override,
                "sets": [s.to_document() for s in self.sets],
            }
        )


class WorkoutLog(CamelModel):
    id: str
    date: str
    routine_id: Optional[str] = None
    routine_name: Optional[str] = None
    notes: str = ""
    duration: Optional[int] = None
    exercises: List[LoggedExercise] = []
    exercise_ids: List[str] = []

    @classmethod
    def empty(cls, key: str) -> "WorkoutLog":
        return cls(id=key, date=key)

    def refresh_exercise_ids(self) -> None:
        self.exercise_ids = [ex.exercise_id for ex in self.exercises]

    def has_provisional(self) -> bool:
        return any(ex.is_provisional for ex in self.exercises)

    def to_document(self) -> Dict[str, Any]:
        return strip_empty(
            {
                "id": self.id,
                "date": self.date,
                "routineId": self.routine_id,
                "routineName": self.routine_name,
                "notes": self.notes or "",
                "duration": self.duration,
                "exerciseIds": [ex.exercise_id for ex in self.exercises],
                "exercises": [ex.to_document() for ex in self.exercises],
            }
        )


class PersonalRecord(CamelModel):
    reps: int
    weight: float
    date: int  # epoch ms
    log_id: str


class PerformanceEntry(CamelModel):
    exercise_id: str
    last_performed_date: Optional[int] = None
    last_performed_sets: List[LoggedSet] = []
    personal_record: Optional[PersonalRecord] = None

    def is_empty(self) -> bool:
        return not self.last_performed_sets

    def to_document(self) -> Dict[str, Any]:
        has_sets = bool(self.last_performed_sets)
        return strip_empty(
            {
                "lastPerformedDate": self.last_performed_date if has_sets else None,
                "lastPerformedSets": [s.to_document() for s in self.last_performed_sets] if has_sets else None,
                "personalRecord": self.personal_record.model_dump(by_alias=True) if self.personal_record else None,
            }
        )

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, BigInteger, Column
from sqlmodel import SQLModel, Field


class WorkoutLogRow(SQLModel, table=True):
    __tablename__ = "workout_log"

    user_id: str = Field(primary_key=True)
    id: str = Field(primary_key=True)  # YYYY-MM-DD
    date: str = Field(index=True)
    routine_id: Optional[str] = None
    routine_name: Optional[str] = None
    notes: str = ""
    duration: Optional[int] = None
    exercise_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    exercises: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class PerformanceEntryRow(SQLModel, table=True):
    __tablename__ = "performance_entry"

    user_id: str = Field(primary_key=True)
    exercise_id: str = Field(primary_key=True)
    last_performed_date: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))
    last_performed_sets: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    personal_record: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))


class RoutineRow(SQLModel, table=True):
    __tablename__ = "routine"

    user_id: str = Field(primary_key=True)
    id: str = Field(primary_key=True)
    name: str
    description: str = ""
    slots: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class ExerciseDefinitionRow(SQLModel, table=True):
    __tablename__ = "exercise_definition"

    user_id: str = Field(primary_key=True)
    id: str = Field(primary_key=True)
    name: str
    muscle_group: str
    exercise_setup: Optional[str] = None
    target_notes: Optional[str] = None


class UserProfileRow(SQLModel, table=True):
    __tablename__ = "user_profile"

    user_id: str = Field(primary_key=True)
    seed_version: int = 0
    # default exercises the user deleted; seeding never re-adds them
    deleted_default_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

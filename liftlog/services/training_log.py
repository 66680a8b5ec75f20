from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel

from ..errors import NotFound, StoreWriteFailure
from ..schemas import (
    ExerciseDefinition,
    LoggedExercise,
    LoggedSet,
    PerformanceEntry,
    PersonalRecord,
    Routine,
    RoutineSlot,
    WorkoutLog,
    date_key,
    new_id,
)
from .fallback import FallbackRecalculator
from .library import RoutineCatalog
from .logs import LogStore
from .performance import PerformanceStore


logger = logging.getLogger(__name__)

DayLike = Union[str, date]


class SaveResult(BaseModel):
    log: Optional[WorkoutLog] = None
    deleted: bool = False
    warnings: List[str] = []


class DeleteResult(BaseModel):
    log_id: str
    existed: bool
    warnings: List[str] = []


def format_personal_record(record: Optional[PersonalRecord]) -> str:
    if record is None:
        return "PR: N/A"
    return f"PR: {record.reps}x{record.weight:g}kg"


def provisional_sets(entry: Optional[PerformanceEntry]) -> List[LoggedSet]:
    if entry is not None and entry.last_performed_sets:
        return [
            LoggedSet(reps=s.reps, weight=s.weight, is_provisional=True)
            for s in entry.last_performed_sets
        ]
    return [LoggedSet(is_provisional=True)]


def synthesize_exercise(
    source: Union[RoutineSlot, ExerciseDefinition], entry: Optional[PerformanceEntry]
) -> LoggedExercise:
    if isinstance(source, RoutineSlot):
        exercise_id = source.exercise_id
        override = source.set_structure_override
    else:
        exercise_id = source.id
        override = None
    return LoggedExercise(
        id=new_id(exercise_id),
        exercise_id=exercise_id,
        name=source.name,
        muscle_group=source.muscle_group,
        exercise_setup=source.exercise_setup,
        sets=provisional_sets(entry),
        set_structure_override=override,
        is_provisional=True,
    )


def _commit(exercise: LoggedExercise) -> None:
    exercise.is_provisional = False
    for s in exercise.sets:
        s.is_provisional = False


def find_exercise(view: WorkoutLog, logged_exercise_id: str) -> LoggedExercise:
    for ex in view.exercises:
        if ex.id == logged_exercise_id:
            return ex
    raise NotFound("logged exercise", logged_exercise_id)


def mark_interacted(view: WorkoutLog, exercise_id: str) -> int:
    # matches an exerciseId or a log-slot id; values are left untouched
    touched = 0
    for ex in view.exercises:
        if ex.exercise_id == exercise_id or ex.id == exercise_id:
            _commit(ex)
            touched += 1
    return touched


def update_set(view: WorkoutLog, logged_exercise_id: str, set_id: str, **changes: Optional[float]) -> LoggedSet:
    unknown = set(changes) - {"reps", "weight"}
    if unknown:
        raise ValueError(f"cannot update set fields {sorted(unknown)}")
    exercise = find_exercise(view, logged_exercise_id)
    for s in exercise.sets:
        if s.id == set_id:
            for field, value in changes.items():
                setattr(s, field, value)
            _commit(exercise)
            return s
    raise NotFound("set", set_id)


def add_set(view: WorkoutLog, logged_exercise_id: str) -> LoggedSet:
    exercise = find_exercise(view, logged_exercise_id)
    previous = exercise.sets[-1] if exercise.sets else None
    new_set = LoggedSet(
        reps=previous.reps if previous else None,
        weight=previous.weight if previous else None,
    )
    exercise.sets.append(new_set)
    _commit(exercise)
    return new_set


def remove_set(view: WorkoutLog, logged_exercise_id: str, set_id: str) -> None:
    exercise = find_exercise(view, logged_exercise_id)
    remaining = [s for s in exercise.sets if s.id != set_id]
    if len(remaining) == len(exercise.sets):
        raise NotFound("set", set_id)
    exercise.sets = remaining
    _commit(exercise)


def remove_exercise(view: WorkoutLog, logged_exercise_id: str) -> None:
    find_exercise(view, logged_exercise_id)
    view.exercises = [ex for ex in view.exercises if ex.id != logged_exercise_id]
    view.refresh_exercise_ids()


def reorder_exercises(view: WorkoutLog, ordered_ids: Sequence[str]) -> None:
    by_id = {ex.id: ex for ex in view.exercises}
    if sorted(by_id) != sorted(ordered_ids):
        raise ValueError("reorder must name every exercise in the log exactly once")
    view.exercises = [by_id[i] for i in ordered_ids]
    view.refresh_exercise_ids()


def set_notes(view: WorkoutLog, notes: str) -> None:
    view.notes = notes


def group_sets(exercises: Iterable[LoggedExercise]) -> Dict[str, List[LoggedSet]]:
    grouped: Dict[str, List[LoggedSet]] = {}
    for ex in exercises:
        grouped.setdefault(ex.exercise_id, []).extend(ex.sets)
    return grouped


class TrainingLogService:

    def __init__(
        self,
        logs: LogStore,
        performance: PerformanceStore,
        routines: RoutineCatalog,
        recalculator: Optional[FallbackRecalculator] = None,
    ) -> None:
        self.logs = logs
        self.performance = performance
        self.routines = routines
        self.recalculator = recalculator or FallbackRecalculator(logs, performance)

    async def _entries(self, user_id: str, exercise_ids: Iterable[str]) -> Dict[str, Optional[PerformanceEntry]]:
        unique_ids = list(dict.fromkeys(exercise_ids))
        entries = await asyncio.gather(*(self.performance.get(user_id, ex_id) for ex_id in unique_ids))
        return dict(zip(unique_ids, entries))

    def _merge_routine(
        self,
        routine: Routine,
        committed: List[LoggedExercise],
        entries: Dict[str, Optional[PerformanceEntry]],
    ) -> List[LoggedExercise]:
        # routine slots set the order; committed exercises are reused, one per slot
        pool: Dict[str, List[LoggedExercise]] = {}
        for ex in committed:
            pool.setdefault(ex.exercise_id, []).append(ex)

        merged: List[LoggedExercise] = []
        for slot in routine.ordered_slots():
            candidates = pool.get(slot.exercise_id)
            if candidates:
                ex = candidates.pop(0)
                _commit(ex)
                ex.set_structure_override = slot.set_structure_override
                merged.append(ex)
            else:
                merged.append(synthesize_exercise(slot, entries.get(slot.exercise_id)))

        leftovers = {id(ex) for candidates in pool.values() for ex in candidates}
        merged.extend(ex for ex in committed if id(ex) in leftovers)
        return merged

    async def hydrate(self, user_id: str, day: DayLike, routine_id: Optional[str] = None) -> WorkoutLog:
        key = date_key(day)
        stored = await self.logs.get(user_id, key)
        view = stored or WorkoutLog.empty(key)

        # a stored log keeps its own routine (or none); routine_id only seeds a new day
        active_id = stored.routine_id if stored is not None else routine_id
        routine = await self.routines.get_routine(user_id, active_id) if active_id else None
        if active_id and routine is None:
            logger.info("[liftlog] hydrate: routine %s no longer exists, using stored order for %s", active_id, key)
            view.routine_id = None
            view.routine_name = None

        wanted = [ex.exercise_id for ex in view.exercises]
        if routine is not None:
            wanted += [slot.exercise_id for slot in routine.slots]
        entries = await self._entries(user_id, wanted)

        if routine is not None:
            view.routine_id = routine.id
            view.routine_name = routine.name
            view.exercises = self._merge_routine(routine, view.exercises, entries)
        for ex in view.exercises:
            entry = entries.get(ex.exercise_id)
            ex.personal_record_display = format_personal_record(entry.personal_record if entry else None)
        view.id = view.date = key
        view.refresh_exercise_ids()
        return view

    async def select_routine(self, user_id: str, view: WorkoutLog, routine_id: Optional[str]) -> WorkoutLog:
        committed = [ex for ex in view.exercises if not ex.is_provisional]
        routine = await self.routines.get_routine(user_id, routine_id) if routine_id else None
        if routine_id and routine is None:
            logger.warning("[liftlog] select_routine: routine %s not found, clearing routine", routine_id)

        if routine is None:
            view.routine_id = None
            view.routine_name = None
            view.exercises = committed
        else:
            entries = await self._entries(user_id, [slot.exercise_id for slot in routine.slots])
            view.routine_id = routine.id
            view.routine_name = routine.name
            view.exercises = self._merge_routine(routine, committed, entries)
            for ex in view.exercises:
                if ex.personal_record_display is None:
                    entry = entries.get(ex.exercise_id)
                    ex.personal_record_display = format_personal_record(entry.personal_record if entry else None)
        view.refresh_exercise_ids()
        return view

    async def add_exercise(self, user_id: str, view: WorkoutLog, definition: ExerciseDefinition) -> LoggedExercise:
        entry = await self.performance.get(user_id, definition.id)
        exercise = synthesize_exercise(definition, entry)
        exercise.personal_record_display = format_personal_record(entry.personal_record if entry else None)
        view.exercises.append(exercise)
        view.refresh_exercise_ids()
        return exercise

    async def save(self, user_id: str, view: WorkoutLog, day: Optional[DayLike] = None) -> SaveResult:
        """Persist the committed part of ``view``; secondary write failures come back as warnings."""
        key = date_key(day if day is not None else view.date or view.id)
        if view.id != key or view.date != key:
            logger.info("[liftlog] save: normalising log id/date %s/%s to %s", view.id, view.date, key)

        exercises = [
            ex.model_copy(
                update={
                    "is_provisional": False,
                    "personal_record_display": None,
                    "sets": [s.model_copy(update={"is_provisional": False}) for s in ex.sets],
                }
            )
            for ex in view.exercises
            if not ex.is_provisional and not ex.is_blank()
        ]
        persisted = WorkoutLog(
            id=key,
            date=key,
            routine_id=view.routine_id,
            routine_name=view.routine_name if view.routine_id else None,
            notes=view.notes or "",
            duration=view.duration,
            exercises=exercises,
        )
        persisted.refresh_exercise_ids()

        stored = await self.logs.get(user_id, key)
        previous_ids = set(stored.exercise_ids) | {ex.exercise_id for ex in stored.exercises} if stored else set()

        # a routine reference alone does not keep a log
        if not persisted.exercises and not persisted.notes.strip():
            if stored is None:
                return SaveResult()
            await self.logs.delete(user_id, key)
            logger.info("[liftlog] save: log %s became empty and was removed", key)
            failures = await self.recalculator.recalculate(user_id, key, previous_ids)
            return SaveResult(deleted=True, warnings=[str(f) for f in failures])

        document = persisted.to_document()
        # a cleared routine must overwrite the stored reference, not merge past it
        document.setdefault("routineId", None)
        document.setdefault("routineName", None)
        saved = await self.logs.upsert(user_id, document)

        failures = await self._update_performance(user_id, key, persisted.exercises)
        removed = previous_ids - set(persisted.exercise_ids)
        if removed:
            failures += await self.recalculator.recalculate(user_id, key, removed)
        logger.info(
            "[liftlog] save: log %s saved with %d exercises (%d warnings)", key, len(saved.exercises), len(failures)
        )
        return SaveResult(log=saved, warnings=[str(f) for f in failures])

    async def _update_performance(
        self, user_id: str, key: str, exercises: Iterable[LoggedExercise]
    ) -> List[StoreWriteFailure]:
        grouped = group_sets(exercises)
        results = await asyncio.gather(
            *(self.performance.upsert(user_id, ex_id, sets, key) for ex_id, sets in grouped.items()),
            return_exceptions=True,
        )
        failures: List[StoreWriteFailure] = []
        for ex_id, result in zip(grouped, results):
            if isinstance(result, Exception):
                logger.error("[liftlog] save: performance update failed for %s: %s", ex_id, result)
                failures.append(StoreWriteFailure(ex_id, "performance update", result))
        return failures

    async def delete(self, user_id: str, day: DayLike) -> DeleteResult:
        key = date_key(day)
        stored = await self.logs.get(user_id, key)
        if stored is None:
            return DeleteResult(log_id=key, existed=False)
        await self.logs.delete(user_id, key)
        exercise_ids = list(stored.exercise_ids) + [ex.exercise_id for ex in stored.exercises]
        failures = await self.recalculator.recalculate(user_id, key, exercise_ids)
        logger.info("[liftlog] delete: log %s removed (%d warnings)", key, len(failures))
        return DeleteResult(log_id=key, existed=True, warnings=[str(f) for f in failures])

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from ..errors import StoreWriteFailure
from ..schemas import (
    LoggedSet,
    PerformanceEntry,
    PersonalRecord,
    WorkoutLog,
    date_key,
    date_key_to_epoch_ms,
    epoch_ms_to_date_key,
)
from .logs import LogStore
from .performance import PerformanceStore, find_best_set, normalize_sets


logger = logging.getLogger(__name__)


def sets_for_exercise(log: WorkoutLog, exercise_id: str) -> List[LoggedSet]:
    sets: List[LoggedSet] = []
    for ex in log.exercises:
        if ex.exercise_id == exercise_id:
            sets.extend(ex.sets)
    return sets


def is_stale(entry: PerformanceEntry, deleted_log_id: str) -> bool:
    record = entry.personal_record
    if record is not None and record.log_id == deleted_log_id:
        return True
    if entry.last_performed_date is not None:
        return epoch_ms_to_date_key(entry.last_performed_date) == deleted_log_id
    return False


class FallbackRecalculator:

    def __init__(self, logs: LogStore, performance: PerformanceStore) -> None:
        self.logs = logs
        self.performance = performance

    async def rebuild(self, user_id: str, exercise_id: str, deleted_log_id: str) -> Optional[PerformanceEntry]:
        entry = await self.performance.get(user_id, exercise_id)
        if entry is None or not is_stale(entry, deleted_log_id):
            return entry

        fallback: Optional[WorkoutLog] = None
        fallback_sets: List[LoggedSet] = []
        for log in await self.logs.logs_containing(user_id, exercise_id, exclude=deleted_log_id):
            fallback_sets = normalize_sets(sets_for_exercise(log, exercise_id))
            if fallback_sets:
                fallback = log
                break

        if fallback is None:
            logger.info("[liftlog] fallback: no remaining log for %s, removing entry", exercise_id)
            await self.performance.delete_all(user_id, exercise_id)
            return None

        performed_at = date_key_to_epoch_ms(fallback.id)
        best = find_best_set(fallback_sets)
        rebuilt = PerformanceEntry(
            exercise_id=exercise_id,
            last_performed_date=performed_at,
            last_performed_sets=fallback_sets,
            personal_record=PersonalRecord(
                reps=best.reps, weight=best.weight, date=performed_at, log_id=fallback.id
            ),
        )
        logger.info("[liftlog] fallback: %s now sourced from log %s", exercise_id, fallback.id)
        return await self.performance.put(user_id, rebuilt)

    async def recalculate(
        self, user_id: str, deleted_log_id: str, exercise_ids: Iterable[str]
    ) -> List[StoreWriteFailure]:
        log_key = date_key(deleted_log_id)
        unique_ids = list(dict.fromkeys(exercise_ids))
        results = await asyncio.gather(
            *(self.rebuild(user_id, ex_id, log_key) for ex_id in unique_ids),
            return_exceptions=True,
        )
        failures: List[StoreWriteFailure] = []
        for ex_id, result in zip(unique_ids, results):
            if isinstance(result, Exception):
                logger.error("[liftlog] fallback: rebuild failed for %s: %s", ex_id, result)
                failures.append(StoreWriteFailure(ex_id, "fallback rebuild", result))
        return failures

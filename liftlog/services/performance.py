from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..db import Database
from ..models import PerformanceEntryRow
from ..schemas import (
    LoggedSet,
    PerformanceEntry,
    PersonalRecord,
    date_key,
    date_key_to_epoch_ms,
)


logger = logging.getLogger(__name__)


def normalize_sets(sets: Iterable[LoggedSet]) -> List[LoggedSet]:
    normalized: List[LoggedSet] = []
    for s in sets:
        reps = s.reps or 0
        weight = s.weight or 0
        if reps == 0 and weight == 0:
            continue
        normalized.append(LoggedSet(id=s.id, reps=reps, weight=weight))
    return normalized


def is_better(reps: int, weight: float, than_reps: int, than_weight: float) -> bool:
    return weight > than_weight or (weight == than_weight and reps > than_reps)


def find_best_set(sets: Iterable[LoggedSet]) -> Optional[LoggedSet]:
    best: Optional[LoggedSet] = None
    for s in normalize_sets(sets):
        if best is None or is_better(s.reps, s.weight, best.reps, best.weight):
            best = s
    return best


def row_to_entry(row: PerformanceEntryRow) -> PerformanceEntry:
    return PerformanceEntry(
        exercise_id=row.exercise_id,
        last_performed_date=row.last_performed_date,
        last_performed_sets=row.last_performed_sets or [],
        personal_record=row.personal_record,
    )


class PerformanceStore:

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get(self, user_id: str, exercise_id: str) -> Optional[PerformanceEntry]:
        async with self.db.session() as session:
            row = await session.get(PerformanceEntryRow, (user_id, exercise_id))
            return row_to_entry(row) if row is not None else None

    async def put(self, user_id: str, entry: PerformanceEntry) -> Optional[PerformanceEntry]:
        # an empty entry is deleted, never written
        async with self.db.session() as session:
            row = await session.get(PerformanceEntryRow, (user_id, entry.exercise_id))
            if entry.is_empty():
                if row is not None:
                    await session.delete(row)
                    await session.commit()
                    logger.debug("[liftlog] performance: removed empty entry %s", entry.exercise_id)
                return None
            doc = entry.to_document()
            if row is None:
                row = PerformanceEntryRow(user_id=user_id, exercise_id=entry.exercise_id)
            row.last_performed_date = doc.get("lastPerformedDate")
            row.last_performed_sets = doc.get("lastPerformedSets")
            row.personal_record = doc.get("personalRecord")
            session.add(row)
            await session.commit()
        return entry

    async def upsert(
        self, user_id: str, exercise_id: str, session_sets: Iterable[LoggedSet], source_log_id: str
    ) -> Optional[PerformanceEntry]:
        # the PR only moves when the session's best set beats it
        log_key = date_key(source_log_id)
        sets = normalize_sets(session_sets)
        existing = await self.get(user_id, exercise_id)
        entry = existing or PerformanceEntry(exercise_id=exercise_id)

        if sets:
            performed_at = date_key_to_epoch_ms(log_key)
            entry.last_performed_date = performed_at
            entry.last_performed_sets = sets
            best = find_best_set(sets)
            record = entry.personal_record
            if best is not None and (
                record is None or is_better(best.reps, best.weight, record.reps, record.weight)
            ):
                entry.personal_record = PersonalRecord(
                    reps=best.reps, weight=best.weight, date=performed_at, log_id=log_key
                )
                logger.info(
                    "[liftlog] performance: new PR for %s: %sx%s (log %s)",
                    exercise_id, best.reps, best.weight, log_key,
                )
        elif existing is None:
            return None

        return await self.put(user_id, entry)

    async def delete_all(self, user_id: str, exercise_id: str) -> bool:
        async with self.db.session() as session:
            row = await session.get(PerformanceEntryRow, (user_id, exercise_id))
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

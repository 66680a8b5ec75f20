from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlmodel import select

from ..db import Database
from ..models import WorkoutLogRow
from ..schemas import WorkoutLog, date_key


logger = logging.getLogger(__name__)

# document key -> row column
_FIELDS = {
    "date": "date",
    "routineId": "routine_id",
    "routineName": "routine_name",
    "notes": "notes",
    "duration": "duration",
    "exerciseIds": "exercise_ids",
    "exercises": "exercises",
}


def row_to_log(row: WorkoutLogRow) -> WorkoutLog:
    return WorkoutLog(
        id=row.id,
        date=row.date,
        routine_id=row.routine_id,
        routine_name=row.routine_name,
        notes=row.notes or "",
        duration=row.duration,
        exercises=row.exercises or [],
        exercise_ids=row.exercise_ids or [],
    )


class LogStore:
    """One workout log document per user per calendar date."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get(self, user_id: str, log_id: str) -> Optional[WorkoutLog]:
        key = date_key(log_id)
        async with self.db.session() as session:
            row = await session.get(WorkoutLogRow, (user_id, key))
            return row_to_log(row) if row is not None else None

    async def upsert(self, user_id: str, document: Dict[str, Any]) -> WorkoutLog:
        # present keys overwrite (None clears), absent keys keep what is stored
        key = date_key(document["id"])
        async with self.db.session() as session:
            row = await session.get(WorkoutLogRow, (user_id, key))
            if row is None:
                row = WorkoutLogRow(user_id=user_id, id=key, date=key)
            for doc_key, column in _FIELDS.items():
                if doc_key in document:
                    setattr(row, column, document[doc_key])
            # id and date always agree with the document key
            row.date = key
            if row.notes is None:
                row.notes = ""
            session.add(row)
            await session.commit()
            await session.refresh(row)
            logger.debug("[liftlog] log upsert: user=%s log=%s exercises=%d", user_id, key, len(row.exercises or []))
            return row_to_log(row)

    async def delete(self, user_id: str, log_id: str) -> bool:
        key = date_key(log_id)
        async with self.db.session() as session:
            row = await session.get(WorkoutLogRow, (user_id, key))
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            logger.debug("[liftlog] log delete: user=%s log=%s", user_id, key)
            return True

    async def list_dates(self, user_id: str) -> List[str]:
        async with self.db.session() as session:
            result = await session.exec(
                select(WorkoutLogRow.id).where(WorkoutLogRow.user_id == user_id).order_by(WorkoutLogRow.id)
            )
            return list(result.all())

    async def list_logs(self, user_id: str) -> List[WorkoutLog]:
        async with self.db.session() as session:
            result = await session.exec(
                select(WorkoutLogRow).where(WorkoutLogRow.user_id == user_id).order_by(WorkoutLogRow.date)
            )
            return [row_to_log(row) for row in result.all()]

    async def logs_containing(
        self, user_id: str, exercise_id: str, exclude: Optional[str] = None
    ) -> List[WorkoutLog]:
        # exercise_ids is a JSON column; filter in Python so this works on any backend
        async with self.db.session() as session:
            result = await session.exec(
                select(WorkoutLogRow)
                .where(WorkoutLogRow.user_id == user_id)
                .order_by(WorkoutLogRow.date.desc())
            )
            rows = result.all()
        return [
            row_to_log(row)
            for row in rows
            if row.id != exclude and exercise_id in (row.exercise_ids or [])
        ]

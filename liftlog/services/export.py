from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable, List

from ..schemas import SET_STRUCTURE_LABEL, WorkoutLog


EXPORT_COLUMNS = [
    "date",
    "routine_name",
    "exercise_id",
    "exercise_name",
    "muscle_group",
    "set_structure",
    "set_index",
    "set_id",
    "reps",
    "weight",
    "notes",
    "exercise_setup",
]


def flatten_log(log: WorkoutLog) -> List[Dict[str, Any]]:
    """One row per set; an exercise without sets still gets a row with ``set_index`` -1."""
    rows: List[Dict[str, Any]] = []
    for ex in log.exercises:
        base = {
            "date": log.date or log.id,
            "routine_name": log.routine_name or "",
            "exercise_id": ex.exercise_id,
            "exercise_name": ex.name,
            "muscle_group": ex.muscle_group,
            "set_structure": SET_STRUCTURE_LABEL.get(ex.effective_structure, ex.effective_structure),
            "notes": ex.notes,
            "exercise_setup": ex.exercise_setup or "",
        }
        if not ex.sets:
            rows.append({**base, "set_index": -1, "set_id": "", "reps": "", "weight": ""})
            continue
        for i, s in enumerate(ex.sets):
            rows.append(
                {
                    **base,
                    "set_index": i,
                    "set_id": s.id,
                    "reps": "" if s.reps is None else s.reps,
                    "weight": "" if s.weight is None else f"{s.weight:g}",
                }
            )
    return rows


def logs_to_csv(logs: Iterable[WorkoutLog]) -> str:
    buffer = io.StringIO()
    # BOM so spreadsheet apps pick up UTF-8
    buffer.write("\ufeff")
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, quoting=csv.QUOTE_ALL)
    writer.writeheader()
    for log in logs:
        writer.writerows(flatten_log(log))
    return buffer.getvalue()

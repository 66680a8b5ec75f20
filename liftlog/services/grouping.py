from __future__ import annotations

from typing import Dict, List, Sequence

from ..schemas import LoggedExercise


CHUNK_SIZE: Dict[str, int] = {
    "superset": 2,
    "triset": 3,
}


def connector_after(exercises: Sequence[LoggedExercise], index: int) -> Dict[str, object]:
    """Whether a link connector renders between ``exercises[index]`` and the next one."""
    # runs of one structure are cut into chunks; only exercises in the same chunk are linked
    structure = exercises[index].effective_structure
    if structure == "normal":
        return {"show": False, "structure": structure}

    run_start = index
    while run_start > 0 and exercises[run_start - 1].effective_structure == structure:
        run_start -= 1
    run_end = index
    while run_end < len(exercises) - 1 and exercises[run_end + 1].effective_structure == structure:
        run_end += 1

    # dropSet and restPause apply to a single exercise: chunks of one
    chunk = CHUNK_SIZE.get(structure, 1)
    position = index - run_start
    last_of_chunk = position % chunk == chunk - 1
    return {"show": not last_of_chunk and index != run_end, "structure": structure}


def connectors(exercises: Sequence[LoggedExercise]) -> List[Dict[str, object]]:
    return [connector_after(exercises, i) for i in range(len(exercises))]

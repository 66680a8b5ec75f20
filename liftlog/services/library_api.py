from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..schemas import MUSCLE_GROUPS, SET_STRUCTURE_LABEL, SET_STRUCTURE_OPTIONS, CamelModel, MuscleGroup, RoutineSlot
from .log_api import get_context, get_user_id

router = APIRouter()


class NewExercise(CamelModel):
    name: str
    muscle_group: MuscleGroup = "Other"
    exercise_setup: Optional[str] = None
    target_notes: Optional[str] = None


class ExerciseChanges(CamelModel):
    name: Optional[str] = None
    muscle_group: Optional[MuscleGroup] = None
    exercise_setup: Optional[str] = None
    target_notes: Optional[str] = None


class NewRoutine(CamelModel):
    name: str
    description: str = ""
    slots: List[RoutineSlot] = []


class RoutineChanges(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    slots: Optional[List[RoutineSlot]] = None


class RestoreDefaults(CamelModel):
    exercise_ids: Optional[List[str]] = None


@router.get("/options")
async def options() -> Dict[str, Any]:
    return {
        "muscleGroups": list(MUSCLE_GROUPS),
        "setStructures": [{"value": s, "label": SET_STRUCTURE_LABEL[s]} for s in SET_STRUCTURE_OPTIONS],
    }


@router.get("/exercises")
async def list_exercises(user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    items = await ctx.exercises.list(user_id)
    return {"exercises": [e.model_dump(by_alias=True) for e in items]}


@router.post("/exercises", status_code=201)
async def create_exercise(body: NewExercise, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    definition = await ctx.exercises.add(
        user_id,
        body.name,
        muscle_group=body.muscle_group,
        exercise_setup=body.exercise_setup,
        target_notes=body.target_notes,
    )
    return definition.model_dump(by_alias=True)


@router.post("/exercises/seed")
async def seed_exercises(user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    result = await ctx.exercises.seed_defaults(user_id)
    return result.model_dump(by_alias=True)


@router.get("/exercises/hidden-defaults")
async def hidden_defaults(user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    items = await ctx.exercises.hidden_defaults(user_id)
    return {"exercises": [e.model_dump(by_alias=True) for e in items]}


@router.post("/exercises/restore-defaults")
async def restore_defaults(body: RestoreDefaults, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    result = await ctx.exercises.restore_defaults(user_id, body.exercise_ids)
    return result.model_dump(by_alias=True)


@router.patch("/exercises/{exercise_id}")
async def update_exercise(exercise_id: str, body: ExerciseChanges, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    definition = await ctx.exercises.update(user_id, exercise_id, **body.model_dump(exclude_unset=True, exclude_none=True))
    return definition.model_dump(by_alias=True)


@router.delete("/exercises/{exercise_id}")
async def delete_exercise(exercise_id: str, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    if not await ctx.exercises.delete(user_id, exercise_id):
        raise HTTPException(status_code=404, detail=f"exercise {exercise_id} not found")
    return {"deleted": exercise_id}


@router.get("/routines")
async def list_routines(user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    items = await ctx.routines.list(user_id)
    return {"routines": [r.model_dump(by_alias=True) for r in items]}


@router.post("/routines", status_code=201)
async def create_routine(body: NewRoutine, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    routine = await ctx.routines.add(user_id, body.name, body.slots, description=body.description)
    return routine.model_dump(by_alias=True)


@router.get("/routines/{routine_id}")
async def get_routine(routine_id: str, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    routine = await ctx.routines.get_routine(user_id, routine_id)
    if routine is None:
        raise HTTPException(status_code=404, detail=f"routine {routine_id} not found")
    return routine.model_dump(by_alias=True)


@router.patch("/routines/{routine_id}")
async def update_routine(routine_id: str, body: RoutineChanges, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    routine = await ctx.routines.update(user_id, routine_id, name=body.name, description=body.description, slots=body.slots)
    return routine.model_dump(by_alias=True)


@router.delete("/routines/{routine_id}")
async def delete_routine(routine_id: str, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    if not await ctx.routines.delete(user_id, routine_id):
        raise HTTPException(status_code=404, detail=f"routine {routine_id} not found")
    return {"deleted": routine_id}

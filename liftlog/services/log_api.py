from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response

from ..schemas import WorkoutLog, CamelModel
from ..settings import get_settings
from .export import logs_to_csv
from .grouping import connectors

router = APIRouter()


def get_context(request: Request):
    return request.app.state.context


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    return x_user_id or get_settings().default_user_id


class RoutineSelection(CamelModel):
    routine_id: Optional[str] = None
    view: Optional[WorkoutLog] = None


def view_payload(view: WorkoutLog) -> Dict[str, Any]:
    payload = view.model_dump(by_alias=True)
    payload["connectors"] = connectors(view.exercises)
    return payload


@router.get("/logs/export")
async def export_logs(user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Response:
    # registered before /logs/{day} so "export" is not read as a date
    logs = await ctx.logs.list_logs(user_id)
    return Response(
        content=logs_to_csv(logs),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="workout-logs.csv"'},
    )


@router.get("/logs/{day}")
async def get_log(day: str, routine_id: Optional[str] = None, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    view = await ctx.training_log.hydrate(user_id, day, routine_id=routine_id)
    return view_payload(view)


@router.put("/logs/{day}")
async def save_log(day: str, view: WorkoutLog, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    result = await ctx.training_log.save(user_id, view, day=day)
    return result.model_dump(by_alias=True)


@router.delete("/logs/{day}")
async def delete_log(day: str, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    result = await ctx.training_log.delete(user_id, day)
    return result.model_dump(by_alias=True)


@router.post("/logs/{day}/routine")
async def select_routine(day: str, selection: RoutineSelection, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    view = selection.view or await ctx.training_log.hydrate(user_id, day)
    view = await ctx.training_log.select_routine(user_id, view, selection.routine_id)
    return view_payload(view)


@router.get("/logged-dates")
async def logged_dates(user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, List[str]]:
    return {"dates": await ctx.logs.list_dates(user_id)}


@router.get("/performance/{exercise_id}")
async def get_performance(exercise_id: str, user_id: str = Depends(get_user_id), ctx=Depends(get_context)) -> Dict[str, Any]:
    entry = await ctx.performance.get(user_id, exercise_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"no performance entry for {exercise_id}")
    return {"exerciseId": exercise_id, **entry.to_document()}

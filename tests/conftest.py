import os
import sys

import pytest_asyncio

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from liftlog.context import AppContext
from liftlog.schemas import LoggedExercise, LoggedSet, RoutineSlot


@pytest_asyncio.fixture
async def ctx(tmp_path):
    context = await AppContext.open(f"sqlite:///{tmp_path / 'liftlog.db'}")
    yield context
    await context.close()


def make_exercise(exercise_id, sets, **kwargs):
    return LoggedExercise(
        exercise_id=exercise_id,
        name=kwargs.pop("name", exercise_id.title()),
        sets=[LoggedSet(reps=r, weight=w) for r, w in sets],
        **kwargs,
    )


def slot(exercise_id, override=None):
    return RoutineSlot(exercise_id=exercise_id, name=exercise_id.title(), muscle_group="Chest", set_structure_override=override)

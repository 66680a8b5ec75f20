import pytest
from sqlalchemy.exc import OperationalError

from liftlog.errors import NotFound
from liftlog.schemas import ExerciseDefinition, LoggedSet
from liftlog.services.grouping import connector_after
from liftlog.services.training_log import (
    add_set,
    mark_interacted,
    remove_exercise,
    remove_set,
    reorder_exercises,
    set_notes,
    update_set,
)

from conftest import make_exercise, slot

DAY = "2024-05-06"


async def push_day(ctx, user_id="u1"):
    return await ctx.routines.add(user_id, "Push Day", [slot("a"), slot("b", "superset"), slot("c", "superset")])


@pytest.mark.asyncio
async def test_hydrate_empty_day_without_routine(ctx):
    view = await ctx.training_log.hydrate("u1", DAY)
    assert view.id == view.date == DAY
    assert view.exercises == []
    assert await ctx.logs.list_dates("u1") == []


@pytest.mark.asyncio
async def test_hydrate_routine_without_log_is_all_provisional(ctx):
    routine = await push_day(ctx)
    await ctx.performance.upsert("u1", "a", [LoggedSet(reps=8, weight=60)], "2024-05-01")

    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)

    assert [ex.exercise_id for ex in view.exercises] == ["a", "b", "c"]
    assert all(ex.is_provisional for ex in view.exercises)
    assert [(s.reps, s.weight, s.is_provisional) for s in view.exercises[0].sets] == [(8, 60, True)]
    assert [(s.reps, s.weight) for s in view.exercises[1].sets] == [(None, None)]
    assert view.exercises[0].personal_record_display == "PR: 8x60kg"
    assert view.exercises[1].personal_record_display == "PR: N/A"
    assert view.routine_name == "Push Day"
    assert connector_after(view.exercises, 1)["show"] is True
    assert connector_after(view.exercises, 0)["show"] is False
    # nothing written by hydrate
    assert await ctx.logs.list_dates("u1") == []


@pytest.mark.asyncio
async def test_editing_one_set_commits_only_that_exercise(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    a = view.exercises[0]

    update_set(view, a.id, a.sets[0].id, reps=10, weight=40)

    assert a.is_provisional is False
    assert a.sets[0].is_provisional is False
    assert [ex.is_provisional for ex in view.exercises] == [False, True, True]


@pytest.mark.asyncio
async def test_mark_interacted_keeps_values(ctx):
    routine = await push_day(ctx)
    await ctx.performance.upsert("u1", "b", [LoggedSet(reps=12, weight=20)], "2024-05-01")
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)

    assert mark_interacted(view, "b") == 1
    b = view.exercises[1]
    assert b.is_provisional is False
    assert [(s.reps, s.weight, s.is_provisional) for s in b.sets] == [(12, 20, False)]


@pytest.mark.asyncio
async def test_save_writes_only_committed_exercises(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    a = view.exercises[0]
    update_set(view, a.id, a.sets[0].id, reps=10, weight=40)

    result = await ctx.training_log.save("u1", view)

    assert result.warnings == []
    assert [ex.exercise_id for ex in result.log.exercises] == ["a"]
    assert result.log.exercise_ids == ["a"]
    assert result.log.routine_id == routine.id
    assert not any(ex.is_provisional for ex in result.log.exercises)
    entry = await ctx.performance.get("u1", "a")
    assert entry.personal_record.log_id == DAY
    assert await ctx.performance.get("u1", "b") is None


@pytest.mark.asyncio
async def test_saving_only_provisional_data_writes_nothing(ctx):
    await ctx.exercises.add("u1", "Bench Press", "Chest")
    view = await ctx.training_log.hydrate("u1", DAY)
    definition = await ctx.exercises.get("u1", "bench-press")
    await ctx.training_log.add_exercise("u1", view, definition)
    assert view.exercises[0].is_provisional

    result = await ctx.training_log.save("u1", view)

    assert result.log is None
    assert result.deleted is False
    assert await ctx.logs.get("u1", DAY) is None


@pytest.mark.asyncio
async def test_saving_an_emptied_log_deletes_it_and_repairs_performance(ctx):
    view = await ctx.training_log.hydrate("u1", DAY)
    view.exercises.append(make_exercise("bench", [(5, 100)]))
    await ctx.training_log.save("u1", view)
    assert await ctx.performance.get("u1", "bench") is not None

    view = await ctx.training_log.hydrate("u1", DAY)
    remove_exercise(view, view.exercises[0].id)
    result = await ctx.training_log.save("u1", view)

    assert result.deleted is True
    assert await ctx.logs.get("u1", DAY) is None
    assert await ctx.performance.get("u1", "bench") is None


@pytest.mark.asyncio
async def test_notes_alone_keep_the_log(ctx):
    view = await ctx.training_log.hydrate("u1", DAY)
    view.notes = "rest day walk"
    result = await ctx.training_log.save("u1", view)
    assert result.log.notes == "rest day walk"
    assert await ctx.logs.list_dates("u1") == [DAY]


@pytest.mark.asyncio
async def test_save_normalises_mismatched_id_and_date(ctx):
    view = await ctx.training_log.hydrate("u1", DAY)
    view.id = "2020-01-01"
    view.exercises.append(make_exercise("bench", [(5, 100)]))

    result = await ctx.training_log.save("u1", view, day=DAY)

    assert result.log.id == result.log.date == DAY
    assert await ctx.logs.get("u1", "2020-01-01") is None


@pytest.mark.asyncio
async def test_round_trip_is_stable_once_committed(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    for ex in view.exercises:
        update_set(view, ex.id, ex.sets[0].id, reps=8, weight=50)
    add_set(view, view.exercises[2].id)
    view.notes = "good session"

    first = await ctx.training_log.save("u1", view)
    again = await ctx.training_log.hydrate("u1", DAY)
    assert not again.has_provisional()
    second = await ctx.training_log.save("u1", again)

    assert second.log.to_document() == first.log.to_document()
    assert [ex.exercise_id for ex in again.exercises] == ["a", "b", "c"]
    assert again.exercises[2].set_structure_override == "superset"


@pytest.mark.asyncio
async def test_hydrate_keeps_committed_exercises_outside_the_routine(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    view.exercises.insert(0, make_exercise("curl", [(12, 15)]))
    c = view.exercises[3]
    update_set(view, c.id, c.sets[0].id, reps=6, weight=30)
    await ctx.training_log.save("u1", view)

    view = await ctx.training_log.hydrate("u1", DAY)

    assert [ex.exercise_id for ex in view.exercises] == ["a", "b", "c", "curl"]
    assert [ex.is_provisional for ex in view.exercises] == [True, True, False, False]


@pytest.mark.asyncio
async def test_missing_routine_falls_back_to_stored_order(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    for ex in view.exercises:
        mark_interacted(view, ex.exercise_id)
        update_set(view, ex.id, ex.sets[0].id, reps=5, weight=20)
    reorder_exercises(view, [view.exercises[i].id for i in (2, 0, 1)])
    await ctx.training_log.save("u1", view)
    await ctx.routines.delete("u1", routine.id)

    view = await ctx.training_log.hydrate("u1", DAY)

    assert [ex.exercise_id for ex in view.exercises] == ["c", "a", "b"]
    assert not view.has_provisional()
    assert view.routine_id is None and view.routine_name is None

    result = await ctx.training_log.save("u1", view)
    assert result.log.routine_id is None


@pytest.mark.asyncio
async def test_select_routine_keeps_committed_work(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY)
    view.exercises.append(make_exercise("b", [(10, 25)]))

    await ctx.training_log.select_routine("u1", view, routine.id)
    assert [(ex.exercise_id, ex.is_provisional) for ex in view.exercises] == [("a", True), ("b", False), ("c", True)]
    assert view.exercises[1].sets[0].reps == 10

    await ctx.training_log.select_routine("u1", view, None)
    assert view.routine_id is None
    assert [ex.exercise_id for ex in view.exercises] == ["b"]


@pytest.mark.asyncio
async def test_select_unknown_routine_clears_routine(ctx):
    view = await ctx.training_log.hydrate("u1", DAY)
    await ctx.training_log.select_routine("u1", view, "gone")
    assert view.routine_id is None


@pytest.mark.asyncio
async def test_add_exercise_prefills_from_history(ctx):
    definition = ExerciseDefinition(id="ohp", name="Overhead Press", muscle_group="Shoulders")
    await ctx.performance.upsert("u1", "ohp", [LoggedSet(reps=5, weight=50), LoggedSet(reps=5, weight=52.5)], "2024-05-01")
    view = await ctx.training_log.hydrate("u1", DAY)

    ex = await ctx.training_log.add_exercise("u1", view, definition)

    assert ex.is_provisional
    assert [(s.reps, s.weight) for s in ex.sets] == [(5, 50), (5, 52.5)]
    assert view.exercise_ids == ["ohp"]
    assert ex.personal_record_display == "PR: 5x52.5kg"


@pytest.mark.asyncio
async def test_performance_failure_is_a_warning_not_a_rollback(ctx, monkeypatch):
    view = await ctx.training_log.hydrate("u1", DAY)
    view.exercises.append(make_exercise("bench", [(5, 100)]))
    view.exercises.append(make_exercise("squat", [(5, 140)]))
    original = ctx.performance.upsert

    async def flaky_upsert(user_id, exercise_id, sets, source_log_id):
        if exercise_id == "bench":
            raise OperationalError("UPDATE performance_entry", {}, Exception("disk I/O error"))
        return await original(user_id, exercise_id, sets, source_log_id)

    monkeypatch.setattr(ctx.performance, "upsert", flaky_upsert)
    result = await ctx.training_log.save("u1", view)

    assert len(result.warnings) == 1
    assert "bench" in result.warnings[0]
    assert (await ctx.logs.get("u1", DAY)).exercise_ids == ["bench", "squat"]
    assert await ctx.performance.get("u1", "squat") is not None
    assert await ctx.performance.get("u1", "bench") is None


@pytest.mark.asyncio
async def test_saving_an_untouched_routine_day_writes_nothing(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)

    result = await ctx.training_log.save("u1", view)

    assert result.log is None
    assert await ctx.logs.list_dates("u1") == []


@pytest.mark.asyncio
async def test_clearing_a_routine_day_deletes_the_stored_log(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    a = view.exercises[0]
    update_set(view, a.id, a.sets[0].id, reps=5, weight=60)
    await ctx.training_log.save("u1", view)

    view = await ctx.training_log.hydrate("u1", DAY)
    remove_exercise(view, view.exercises[0].id)
    result = await ctx.training_log.save("u1", view)

    assert result.deleted is True
    assert await ctx.logs.list_dates("u1") == []


@pytest.mark.asyncio
async def test_stored_log_without_routine_ignores_requested_routine(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY)
    view.exercises.append(make_exercise("curl", [(12, 15)]))
    await ctx.training_log.save("u1", view)

    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)

    assert [(ex.exercise_id, ex.is_provisional) for ex in view.exercises] == [("curl", False)]
    assert view.routine_id is None


@pytest.mark.asyncio
async def test_remove_set_commits_the_exercise(ctx):
    routine = await push_day(ctx)
    await ctx.performance.upsert("u1", "a", [LoggedSet(reps=8, weight=60), LoggedSet(reps=6, weight=65)], "2024-05-01")
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)
    a = view.exercises[0]

    remove_set(view, a.id, a.sets[0].id)

    assert a.is_provisional is False
    assert [(s.reps, s.weight, s.is_provisional) for s in a.sets] == [(6, 65, False)]
    with pytest.raises(NotFound):
        remove_set(view, a.id, "no-such-set")
    with pytest.raises(NotFound):
        remove_set(view, "no-such-exercise", a.sets[0].id)


@pytest.mark.asyncio
async def test_set_notes_is_saved_without_committing_exercises(ctx):
    routine = await push_day(ctx)
    view = await ctx.training_log.hydrate("u1", DAY, routine_id=routine.id)

    set_notes(view, "felt strong")

    assert view.has_provisional()
    result = await ctx.training_log.save("u1", view)
    assert result.log.notes == "felt strong"
    assert result.log.exercises == []
    assert result.log.routine_id == routine.id

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from sqlmodel import select

from ..db import Database
from ..errors import NotFound
from ..models import ExerciseDefinitionRow, RoutineRow, UserProfileRow
from ..schemas import CamelModel, ExerciseDefinition, Routine, RoutineSlot, new_id, slugify, strip_empty
from .defaults import DEFAULT_EXERCISES, DEFAULTS_BY_ID, SEED_VERSION, by_muscle_group
from .performance import PerformanceStore


logger = logging.getLogger(__name__)

_EXERCISE_FIELDS = ("name", "muscle_group", "exercise_setup", "target_notes")


class SeedResult(CamelModel):
    added_count: int = 0
    bumped_seed_version: bool = False


def row_to_definition(row: ExerciseDefinitionRow) -> ExerciseDefinition:
    return ExerciseDefinition(
        id=row.id,
        name=row.name,
        muscle_group=row.muscle_group,
        exercise_setup=row.exercise_setup,
        target_notes=row.target_notes,
    )


def definition_to_row(user_id: str, definition: ExerciseDefinition) -> ExerciseDefinitionRow:
    return ExerciseDefinitionRow(
        user_id=user_id,
        id=definition.id,
        name=definition.name,
        muscle_group=definition.muscle_group,
        exercise_setup=definition.exercise_setup,
        target_notes=definition.target_notes,
    )


def row_to_routine(row: RoutineRow) -> Routine:
    return Routine(id=row.id, name=row.name, description=row.description or "", slots=row.slots or [])


def ordered_slot_documents(slots: Iterable[RoutineSlot]) -> List[RoutineSlot]:
    return [slot.model_copy(update={"position": i}) for i, slot in enumerate(slots)]


class ExerciseLibrary:
    def __init__(self, db: Database, performance: Optional[PerformanceStore] = None) -> None:
        self.db = db
        self.performance = performance or PerformanceStore(db)

    async def get(self, user_id: str, exercise_id: str) -> Optional[ExerciseDefinition]:
        async with self.db.session() as session:
            row = await session.get(ExerciseDefinitionRow, (user_id, exercise_id))
            return row_to_definition(row) if row is not None else None

    async def list(self, user_id: str) -> List[ExerciseDefinition]:
        async with self.db.session() as session:
            result = await session.exec(
                select(ExerciseDefinitionRow)
                .where(ExerciseDefinitionRow.user_id == user_id)
                .order_by(ExerciseDefinitionRow.name)
            )
            return [row_to_definition(r) for r in result.all()]

    async def add(
        self,
        user_id: str,
        name: str,
        muscle_group: str = "Other",
        exercise_setup: Optional[str] = None,
        target_notes: Optional[str] = None,
    ) -> ExerciseDefinition:
        """Create a definition whose id is the slugged name (``bench-press``, ``bench-press-2``, ...)."""
        definition = ExerciseDefinition(
            id="pending",
            name=name.strip(),
            muscle_group=muscle_group,
            exercise_setup=exercise_setup,
            target_notes=target_notes,
        )
        base_id = slugify(name)
        candidate = base_id
        suffix = 2
        async with self.db.session() as session:
            while await session.get(ExerciseDefinitionRow, (user_id, candidate)) is not None:
                candidate = f"{base_id}-{suffix}"
                suffix += 1
            definition.id = candidate
            session.add(definition_to_row(user_id, definition))
            await session.commit()
        return definition

    async def update(self, user_id: str, exercise_id: str, **changes: Any) -> ExerciseDefinition:
        unknown = set(changes) - set(_EXERCISE_FIELDS)
        if unknown:
            raise ValueError(f"cannot update exercise fields {sorted(unknown)}")
        async with self.db.session() as session:
            row = await session.get(ExerciseDefinitionRow, (user_id, exercise_id))
            if row is None:
                raise NotFound("exercise", exercise_id)
            # re-validated so a bad muscle group never reaches the table
            updated = ExerciseDefinition.model_validate({**row_to_definition(row).model_dump(), **changes})
            for field in _EXERCISE_FIELDS:
                setattr(row, field, getattr(updated, field))
            session.add(row)
            await session.commit()
        logger.info("[liftlog] library: updated exercise %s (%s)", exercise_id, ", ".join(sorted(changes)))
        return updated

    async def delete(self, user_id: str, exercise_id: str) -> bool:
        async with self.db.session() as session:
            row = await session.get(ExerciseDefinitionRow, (user_id, exercise_id))
            if row is None:
                return False
            await session.delete(row)
            if exercise_id in DEFAULTS_BY_ID:
                profile = await session.get(UserProfileRow, user_id) or UserProfileRow(user_id=user_id)
                tombstones = list(profile.deleted_default_ids or [])
                if exercise_id not in tombstones:
                    profile.deleted_default_ids = tombstones + [exercise_id]
                session.add(profile)
            await session.commit()
        await self.performance.delete_all(user_id, exercise_id)
        logger.info("[liftlog] library: deleted exercise %s and its performance entry", exercise_id)
        return True

    async def seed_defaults(self, user_id: str) -> SeedResult:
        """Add the default exercises the user is missing, skipping deleted defaults.

        Existing definitions are never overwritten. A second call with
        nothing missing and a current seed version writes nothing.
        """
        async with self.db.session() as session:
            profile = await session.get(UserProfileRow, user_id) or UserProfileRow(user_id=user_id)
            tombstones = set(profile.deleted_default_ids or [])
            result = await session.exec(
                select(ExerciseDefinitionRow.id).where(ExerciseDefinitionRow.user_id == user_id)
            )
            existing = set(result.all())
            missing = [ex for ex in DEFAULT_EXERCISES if ex.id not in existing and ex.id not in tombstones]
            bumped = profile.seed_version < SEED_VERSION
            if not missing and not bumped:
                return SeedResult()

            for definition in missing:
                session.add(definition_to_row(user_id, definition))
            if bumped:
                profile.seed_version = SEED_VERSION
                session.add(profile)
            await session.commit()
        logger.info("[liftlog] library: seeded %d default exercises for %s", len(missing), user_id)
        return SeedResult(added_count=len(missing), bumped_seed_version=bumped)

    async def hidden_defaults(self, user_id: str) -> List[ExerciseDefinition]:
        async with self.db.session() as session:
            profile = await session.get(UserProfileRow, user_id)
            tombstones = list(profile.deleted_default_ids or []) if profile is not None else []
        return by_muscle_group([DEFAULTS_BY_ID[i] for i in tombstones if i in DEFAULTS_BY_ID])

    async def restore_defaults(self, user_id: str, exercise_ids: Optional[Iterable[str]] = None) -> SeedResult:
        """Lift the tombstones on ``exercise_ids`` (all of them when omitted) and re-seed."""
        async with self.db.session() as session:
            profile = await session.get(UserProfileRow, user_id)
            if profile is not None and profile.deleted_default_ids:
                restore = set(profile.deleted_default_ids if exercise_ids is None else exercise_ids)
                profile.deleted_default_ids = [i for i in profile.deleted_default_ids if i not in restore]
                session.add(profile)
                await session.commit()
        return await self.seed_defaults(user_id)


class RoutineCatalog:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def get_routine(self, user_id: str, routine_id: str) -> Optional[Routine]:
        async with self.db.session() as session:
            row = await session.get(RoutineRow, (user_id, routine_id))
            return row_to_routine(row) if row is not None else None

    async def list(self, user_id: str) -> List[Routine]:
        async with self.db.session() as session:
            result = await session.exec(
                select(RoutineRow).where(RoutineRow.user_id == user_id).order_by(RoutineRow.name)
            )
            return [row_to_routine(r) for r in result.all()]

    async def add(
        self, user_id: str, name: str, slots: List[RoutineSlot], description: str = ""
    ) -> Routine:
        ordered = ordered_slot_documents(slots)
        routine = Routine(id=new_id("routine"), name=name, description=description, slots=ordered)
        async with self.db.session() as session:
            session.add(
                RoutineRow(
                    user_id=user_id,
                    id=routine.id,
                    name=routine.name,
                    description=routine.description,
                    slots=[strip_empty(s.model_dump(by_alias=True)) for s in ordered],
                )
            )
            await session.commit()
        return routine

    async def update(
        self,
        user_id: str,
        routine_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        slots: Optional[List[RoutineSlot]] = None,
    ) -> Routine:
        async with self.db.session() as session:
            row = await session.get(RoutineRow, (user_id, routine_id))
            if row is None:
                raise NotFound("routine", routine_id)
            if name is not None:
                row.name = name
            if description is not None:
                row.description = description
            if slots is not None:
                row.slots = [strip_empty(s.model_dump(by_alias=True)) for s in ordered_slot_documents(slots)]
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row_to_routine(row)

    async def delete(self, user_id: str, routine_id: str) -> bool:
        async with self.db.session() as session:
            row = await session.get(RoutineRow, (user_id, routine_id))
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

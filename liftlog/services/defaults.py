from __future__ import annotations

from typing import Dict, List, Optional

from ..schemas import MUSCLE_GROUPS, ExerciseDefinition, slugify


# bump when DEFAULT_EXERCISES changes so existing users pick up the additions
SEED_VERSION = 2


def default_exercise_id(name: str, muscle_group: str) -> str:
    # the muscle group keeps same-named defaults apart ("Dips" for chest and triceps)
    return f"{slugify(name)}_{muscle_group.lower()}"


def _default(name: str, muscle_group: str, target_notes: str, exercise_setup: Optional[str] = None) -> ExerciseDefinition:
    return ExerciseDefinition(
        id=default_exercise_id(name, muscle_group),
        name=name,
        muscle_group=muscle_group,
        exercise_setup=exercise_setup,
        target_notes=target_notes,
    )


DEFAULT_EXERCISES: List[ExerciseDefinition] = [
    # Chest
    _default("Incline chest w/dumbbells", "Chest", "Upper Chest"),
    _default("Incline chest w/ Smith Machine", "Chest", "Upper Chest"),
    _default("Machine Chest Press", "Chest", "Middle Chest"),
    _default("Bench Press", "Chest", "Middle Chest"),
    _default("Seated Cable Pec Flye", "Chest", "Lower Chest"),
    _default("Dips", "Chest", "Lower Chest", "Chest Focus"),
    # Back
    _default("Wide-Grip Pull ups", "Back", "Lats and Middle Back"),
    _default("Chest-Supported Row", "Back", "Upper Back and Middle Back"),
    _default("Wide-Grip Lat Pull down", "Back", "Lats and Middle Back"),
    _default("Neutral-Grip Lat Pull down", "Back", "Lats and Teres Major"),
    _default("Half-Kneeling 1-Arm Lat Pulldown", "Back", "Lats and Teres Major"),
    _default("Barbell Rows", "Back", "Upper Back and Middle Back"),
    # Shoulders
    _default("Standing Overhead Press", "Shoulders", "Anterior deltoid"),
    _default("Dumbbell Overhead Press", "Shoulders", "Anterior deltoid"),
    _default("Machine Shoulder Press", "Shoulders", "Anterior deltoid"),
    _default("Lateral Raise Machine", "Shoulders", "Lateral deltoid"),
    _default("Lateral Raise Dumbbell", "Shoulders", "Lateral deltoid"),
    _default("Cable Lateral Raise", "Shoulders", "Lateral deltoid"),
    _default("Reverse Peck Deck", "Shoulders", "Posterior deltoid"),
    _default("Seated Reverse Dumbbell Flye", "Shoulders", "Posterior deltoid"),
    # Legs
    _default("Barbell Back Squat", "Legs", "Quadriceps, glutes, hamstrings"),
    _default("Hack Squat", "Legs", "Quadriceps"),
    _default("Leg Extension", "Legs", "Quadriceps"),
    _default("Leg Press Machine", "Legs", "Quadriceps, glutes"),
    _default("Leg Curl Machine", "Legs", "Hamstrings"),
    _default("Romanian Dead Lift", "Legs", "Hamstrings, glutes"),
    _default("Hip Thrust", "Legs", "Glutes"),
    _default("Abductor Machine", "Legs", "Glutes"),
    _default("Standing Calves", "Legs", "Gastrocnemius"),
    # Triceps
    _default("Dips", "Triceps", "Lateral head", "Triceps Focus"),
    _default("Cable Triceps Kickback", "Triceps", "Lateral head"),
    _default("Overhead Cable Triceps Extension", "Triceps", "Long head"),
    _default("Skullcrusher", "Triceps", "Long head"),
    # Biceps
    _default("EZ Bar Curl", "Biceps", "Short Head-Inner"),
    _default("Chinup", "Biceps", "Short-Inner and Long-Outer"),
    _default("Incline Dumbbell Curl", "Biceps", "Long Head-Outer"),
    _default("Face Away Bayesian Cable Curl", "Biceps", "Long Head-Outer"),
    _default("Hammer Curl", "Biceps", "Brachialis"),
    # Abs
    _default("Cable Crunch", "Abs", "Upper"),
    _default("Crunch Machine", "Abs", "Upper"),
    _default("Candlestick", "Abs", "Upper & Lower"),
    _default("Hanging Leg Raise", "Abs", "Lower"),
    _default("Back-Supported Leg Raise", "Abs", "Lower"),
    _default("Super Range Motion Crunch", "Abs", "Upper & Lower"),
    _default("Abs Wheel/Rollout", "Abs", "Core Stability"),
    # Other
    _default("Foam Rolling", "Other", "Myofascial release"),
    _default("Stretching", "Other", "General flexibility"),
]

DEFAULTS_BY_ID: Dict[str, ExerciseDefinition] = {ex.id: ex for ex in DEFAULT_EXERCISES}


def by_muscle_group(definitions: List[ExerciseDefinition]) -> List[ExerciseDefinition]:
    order = {group: i for i, group in enumerate(MUSCLE_GROUPS)}
    return sorted(definitions, key=lambda ex: (order.get(ex.muscle_group, len(order)), ex.name))

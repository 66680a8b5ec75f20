from __future__ import annotations

from typing import Optional

from .db import Database
from .services.fallback import FallbackRecalculator
from .services.library import ExerciseLibrary, RoutineCatalog
from .services.logs import LogStore
from .services.performance import PerformanceStore
from .services.training_log import TrainingLogService


class AppContext:
    """Every store wired to one database; handed to request handlers via ``app.state``."""

    def __init__(self, db: Database) -> None:
        self.db = db
        self.logs = LogStore(db)
        self.performance = PerformanceStore(db)
        self.routines = RoutineCatalog(db)
        self.exercises = ExerciseLibrary(db, self.performance)
        self.recalculator = FallbackRecalculator(self.logs, self.performance)
        self.training_log = TrainingLogService(self.logs, self.performance, self.routines, self.recalculator)

    @classmethod
    async def open(cls, database_url: Optional[str] = None) -> "AppContext":
        db = Database(database_url)
        await db.init()
        return cls(db)

    async def close(self) -> None:
        await self.db.close()

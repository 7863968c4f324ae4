"""
Aiguillage des jobs vers leur routine.
"""

from collections.abc import Awaitable, Callable, Mapping

from src.core.entities.job import JobType
from src.core.exceptions import UnsupportedJobType
from src.services.job_context import JobContext

JobRoutine = Callable[[JobContext], Awaitable[None]]


class JobDispatcher:
    """
    Table exhaustive JobType -> routine.

    La table est validee a la construction : un type de job sans routine
    est une erreur de configuration, pas une erreur d'execution.
    """

    def __init__(self, routines: Mapping[JobType, JobRoutine]) -> None:
        missing = [job_type.value for job_type in JobType if job_type not in routines]
        if missing:
            raise UnsupportedJobType(f"No routine registered for job types: {', '.join(missing)}")
        self._routines = dict(routines)

    def routine_for(self, job_type: JobType) -> JobRoutine:
        try:
            return self._routines[job_type]
        except KeyError:
            raise UnsupportedJobType(f"No routine registered for job type {job_type}") from None

    async def dispatch(self, context: JobContext) -> None:
        """Execute la routine du job porte par le contexte."""
        await self.routine_for(context.job.type)(context)

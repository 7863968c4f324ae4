"""
Contexte d'execution d'un job.

Donne aux routines d'import l'acces aux parametres du job, le point de
controle d'annulation et l'ecriture des compteurs de progression.
"""

from typing import Any

from loguru import logger

from src.core.entities.job import SUMMARY_KEY, Job, JobStatus
from src.core.exceptions import JobTerminatedError
from src.core.ports.repositories import IJobRepository


class JobContext:
    """
    Contexte du job en cours pour une routine.

    Les routines appellent checkpoint() au moins une fois par page de la
    source : un job passe en failed depuis l'exterieur est alors abandonne.
    """

    def __init__(self, job: Job, jobs: IJobRepository) -> None:
        self._job = job
        self._jobs = jobs
        self.logger = logger.bind(job_id=job.id, user_id=job.user_id, job_type=job.type.value)

    @property
    def job(self) -> Job:
        return self._job

    @property
    def user_id(self) -> int:
        """Utilisateur du job (les jobs systeme n'en ont pas)."""
        if self._job.user_id is None:
            raise ValueError(f"Job {self._job.id} ({self._job.type.value}) has no user")
        return self._job.user_id

    @property
    def parameters(self) -> dict[str, Any]:
        return self._job.parameters

    def param(self, name: str, default: Any = None) -> Any:
        value = self._job.parameters.get(name)
        return default if value is None else value

    def checkpoint(self) -> None:
        """
        Verifie que le job est toujours in_progress.

        Raises:
            JobTerminatedError: Le job a ete termine de l'exterieur
        """
        status = self._jobs.get_status(self._job.id)
        if status is not JobStatus.IN_PROGRESS:
            self.logger.warning("Job termine de l'exterieur", status=status.value if status else None)
            raise JobTerminatedError(f"Job {self._job.id} is no longer in progress")

    def report(self, summary: dict[str, Any]) -> None:
        """Enregistre les compteurs courants sous parameters._summary."""
        self._job.parameters[SUMMARY_KEY] = summary
        self._jobs.update_parameters(self._job.id, {SUMMARY_KEY: summary})

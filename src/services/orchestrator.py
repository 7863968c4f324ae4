"""
Orchestrateur des imports.

Traduit une demande de synchronisation en jobs dans la file. Aucun import
n'est execute ici : le worker s'en charge.
"""

from enum import Enum
from typing import Any, Optional

from loguru import logger

from src.core.entities.job import Job, JobType
from src.core.ports.repositories import ICredentialRepository, IJobRepository


class SyncSource(Enum):
    """Sources synchronisables a la demande."""

    MEDIA_SERVER = "media_server"
    SOCIAL = "social"
    CSV_HISTORY = "csv_history"
    CSV_RATINGS = "csv_ratings"


_SOURCE_JOB_TYPES: dict[SyncSource, tuple[JobType, ...]] = {
    SyncSource.MEDIA_SERVER: (JobType.MEDIA_SERVER_REFRESH,),
    SyncSource.SOCIAL: (JobType.SOCIAL_IMPORT_HISTORY, JobType.SOCIAL_IMPORT_RATINGS),
    SyncSource.CSV_HISTORY: (JobType.CSV_IMPORT_HISTORY,),
    SyncSource.CSV_RATINGS: (JobType.CSV_IMPORT_RATINGS,),
}


class ImportOrchestrator:
    """Mise en file des jobs de synchronisation."""

    def __init__(self, jobs: IJobRepository, credentials: ICredentialRepository) -> None:
        self._jobs = jobs
        self._credentials = credentials

    def _enqueue(
        self,
        job_type: JobType,
        user_id: Optional[int] = None,
        parameters: Optional[dict[str, Any]] = None,
    ) -> Job:
        job = self._jobs.create(Job(type=job_type, user_id=user_id, parameters=dict(parameters or {})))
        logger.info("Job mis en file", job_id=job.id, job_type=job_type.value, user_id=user_id)
        return job

    def enqueue_sync(
        self,
        user_id: int,
        source: SyncSource | str,
        parameters: Optional[dict[str, Any]] = None,
    ) -> list[Job]:
        """
        Met en file les jobs d'une source pour un utilisateur.

        Raises:
            ValueError: Source inconnue, ou import CSV sans parametre file
        """
        source = SyncSource(source)
        if source in (SyncSource.CSV_HISTORY, SyncSource.CSV_RATINGS) and not (parameters or {}).get("file"):
            raise ValueError("CSV imports require a 'file' parameter")
        return [self._enqueue(job_type, user_id, parameters) for job_type in _SOURCE_JOB_TYPES[source]]

    def enqueue_sync_all(self, user_id: int) -> list[Job]:
        """Met en file les imports des sources pour lesquelles l'utilisateur a des identifiants valides."""
        jobs: list[Job] = []
        if self._credentials.get_jellyfin_credentials(user_id) is not None:
            jobs.extend(self.enqueue_sync(user_id, SyncSource.MEDIA_SERVER))
        if self._credentials.get_trakt_credentials(user_id) is not None:
            jobs.extend(self.enqueue_sync(user_id, SyncSource.SOCIAL))
        if not jobs:
            logger.warning("Aucune source configuree pour l'utilisateur", user_id=user_id)
        return jobs

    def enqueue_metadata_refresh(self, limit: Optional[int] = None) -> Job:
        parameters = {"limit": limit} if limit is not None else {}
        return self._enqueue(JobType.METADATA_REFRESH, parameters=parameters)

    def enqueue_poster_cache_refresh(self, force: bool = False) -> Job:
        return self._enqueue(JobType.POSTER_CACHE_REFRESH, parameters={"force": True} if force else {})

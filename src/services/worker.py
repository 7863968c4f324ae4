"""
Worker de la file de jobs.

Boucle : prendre le plus ancien job waiting, le reclamer par une mise a
jour gardee, executer sa routine, enregistrer l'issue. Plusieurs workers
(processus) peuvent tourner en parallele : la reclamation garantit qu'un
job n'est execute que par un seul d'entre eux.
"""

import asyncio
from collections.abc import Callable
from typing import Any, Optional

from loguru import logger

from src.core.entities.job import FAILURE_KEY, Job
from src.core.exceptions import (
    AuthError,
    BatchFailureError,
    JobAlreadyClaimed,
    JobTerminatedError,
    StorageError,
)
from src.core.ports.repositories import ICredentialRepository, IJobRepository
from src.services.job_context import JobContext
from src.services.job_dispatcher import JobDispatcher


def failure_payload(error: BaseException) -> dict[str, Any]:
    """Construit la valeur de parameters._failure pour une exception."""
    payload: dict[str, Any] = {
        "kind": getattr(error, "kind", type(error).__name__),
        "message": str(error),
    }
    if isinstance(error, BatchFailureError):
        payload["summary"] = error.summary
    return payload


class JobWorker:
    """
    Execute les jobs de la file un par un.

    Example:
        worker = JobWorker(jobs, credentials, dispatcher, poll_interval=5.0)
        await worker.run()
    """

    def __init__(
        self,
        jobs: IJobRepository,
        credentials: ICredentialRepository,
        dispatcher: JobDispatcher,
        poll_interval: float = 5.0,
    ) -> None:
        self._jobs = jobs
        self._credentials = credentials
        self._dispatcher = dispatcher
        self._poll_interval = poll_interval

    def _claim(self, job: Job) -> None:
        if not self._jobs.claim(job.id):
            raise JobAlreadyClaimed(f"Job {job.id} was claimed by another worker")

    async def execute(self, job: Job) -> bool:
        """
        Reclame puis execute un job.

        Returns:
            True si le job est done, False sinon (echec, terminaison,
            ou job deja reclame par un autre worker)
        """
        try:
            self._claim(job)
        except JobAlreadyClaimed as e:
            logger.debug(str(e), job_id=job.id)
            return False

        context = JobContext(job, self._jobs)
        log = context.logger
        log.info("Job demarre")

        try:
            await self._dispatcher.dispatch(context)
        except JobTerminatedError:
            # Le job est deja en failed, aucune transition a faire
            log.warning("Job abandonne apres terminaison")
            return False
        except AuthError as e:
            self._fail(job, e)
            if job.user_id is not None:
                self._credentials.mark_invalid(job.user_id, e.provider)
            return False
        except Exception as e:
            self._fail(job, e)
            return False

        if not self._jobs.mark_done(job.id):
            log.warning("Job termine pendant son execution, statut conserve")
            return False
        log.info("Job termine", summary=job.summary)
        return True

    def _fail(self, job: Job, error: Exception) -> None:
        payload = failure_payload(error)
        job.parameters[FAILURE_KEY] = payload
        logger.bind(job_id=job.id, user_id=job.user_id, job_type=job.type.value).error(
            "Job en echec", kind=payload["kind"], error=payload["message"]
        )
        self._jobs.mark_failed(job.id, payload)

    async def run_once(self) -> Optional[bool]:
        """
        Traite le plus ancien job en attente.

        Returns:
            None si la file est vide, sinon l'issue de execute()
        """
        job = self._jobs.find_oldest_waiting()
        if job is None:
            return None
        return await self.execute(job)

    async def run(
        self,
        max_jobs: Optional[int] = None,
        should_stop: Callable[[], bool] = lambda: False,
    ) -> int:
        """
        Boucle principale du worker.

        Une erreur de la base (verrou, connexion perdue) est journalisee et la
        boucle reprend apres poll_interval.

        Args:
            max_jobs: Nombre de jobs apres lequel s'arreter (None = infini)
            should_stop: Predicat d'arret verifie entre deux jobs

        Returns:
            Nombre de jobs traites
        """
        processed = 0
        while not should_stop():
            if max_jobs is not None and processed >= max_jobs:
                break
            try:
                outcome = await self.run_once()
            except StorageError as e:
                # Un job interrompu reste in_progress jusqu'a reset_stale
                logger.error("Erreur de la file de jobs, nouvel essai", error=str(e))
                await asyncio.sleep(self._poll_interval)
                continue
            if outcome is None:
                await asyncio.sleep(self._poll_interval)
                continue
            processed += 1
        return processed

    async def process_job(self, job_id: int) -> int:
        """
        Execute un job precis (mode "un job par processus").

        Returns:
            Code de sortie : 0 si le job est done, 1 sinon
        """
        job = self._jobs.get(job_id)
        if job is None:
            logger.error("Job introuvable", job_id=job_id)
            return 1
        return 0 if await self.execute(job) else 1

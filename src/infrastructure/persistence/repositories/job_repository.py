"""
Implementation SQLModel de la file de jobs.

Chaque operation ouvre sa propre session et committe immediatement pour
que les changements de statut soient visibles des autres workers. Les
transitions sont des UPDATE gardes par le statut attendu : une transition
n'est acceptee que si exactement une ligne est modifiee.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Optional

from loguru import logger
from sqlalchemy import Engine, update
from sqlmodel import col, select

from src.core.entities.job import FAILURE_KEY, Job, JobStatus, JobType
from src.core.ports.repositories import IJobRepository
from src.infrastructure.persistence.database import session_scope
from src.infrastructure.persistence.models import JobModel


class SQLModelJobRepository(IJobRepository):
    """Repository SQLModel de la file de jobs."""

    def __init__(self, engine: Engine) -> None:
        """
        Args :
            engine : Engine partage ; une session courte est ouverte par operation
        """
        self._engine = engine

    @staticmethod
    def _to_entity(model: JobModel) -> Job:
        return Job(
            id=model.id,
            user_id=model.user_id,
            type=JobType(model.type),
            status=JobStatus(model.status),
            parameters=model.params,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def create(self, job: Job) -> Job:
        now = datetime.utcnow()
        model = JobModel(
            user_id=job.user_id,
            type=job.type.value,
            status=JobStatus.WAITING.value,
            created_at=job.created_at or now,
            updated_at=now,
        )
        model.params = job.parameters
        with session_scope(self._engine) as session:
            session.add(model)
            session.commit()
            session.refresh(model)
            return self._to_entity(model)

    def get(self, job_id: int) -> Optional[Job]:
        with session_scope(self._engine) as session:
            model = session.get(JobModel, job_id)
            return self._to_entity(model) if model else None

    def get_status(self, job_id: int) -> Optional[JobStatus]:
        with session_scope(self._engine) as session:
            status = session.exec(select(JobModel.status).where(JobModel.id == job_id)).first()
            return JobStatus(status) if status else None

    def find_oldest_waiting(self) -> Optional[Job]:
        statement = (
            select(JobModel)
            .where(JobModel.status == JobStatus.WAITING.value)
            .order_by(col(JobModel.created_at).asc(), col(JobModel.id).asc())
        )
        with session_scope(self._engine) as session:
            model = session.exec(statement).first()
            return self._to_entity(model) if model else None

    def _transition(
        self,
        job_id: int,
        from_statuses: tuple[JobStatus, ...],
        target: JobStatus,
        extra_parameters: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Applique une transition gardee par le statut courant.

        Retourne True si exactement une ligne a ete modifiee.
        """
        for source in from_statuses:
            if not source.can_transition_to(target):
                raise ValueError(f"Invalid job transition {source.value} -> {target.value}")

        with session_scope(self._engine) as session:
            values: dict[str, Any] = {
                "status": target.value,
                "updated_at": datetime.utcnow(),
            }
            if extra_parameters:
                current = session.exec(
                    select(JobModel.parameters).where(JobModel.id == job_id)
                ).first()
                parameters = json.loads(current) if current else {}
                parameters.update(extra_parameters)
                values["parameters"] = json.dumps(parameters, default=str)

            result = session.execute(
                update(JobModel)
                .where(
                    col(JobModel.id) == job_id,
                    col(JobModel.status).in_([status.value for status in from_statuses]),
                )
                .values(**values)
            )
            session.commit()
            return result.rowcount == 1

    def claim(self, job_id: int) -> bool:
        return self._transition(job_id, (JobStatus.WAITING,), JobStatus.IN_PROGRESS)

    def mark_done(self, job_id: int) -> bool:
        return self._transition(job_id, (JobStatus.IN_PROGRESS,), JobStatus.DONE)

    def mark_failed(self, job_id: int, failure: dict[str, Any]) -> bool:
        return self._transition(
            job_id, (JobStatus.IN_PROGRESS,), JobStatus.FAILED, {FAILURE_KEY: failure}
        )

    def terminate(self, job_id: int, reason: str) -> bool:
        terminated = self._transition(
            job_id,
            (JobStatus.WAITING, JobStatus.IN_PROGRESS),
            JobStatus.FAILED,
            {FAILURE_KEY: {"kind": "Terminated", "message": reason}},
        )
        if terminated:
            logger.info("Job termine par l'operateur", job_id=job_id, reason=reason)
        return terminated

    def update_parameters(self, job_id: int, values: dict[str, Any]) -> None:
        with session_scope(self._engine) as session:
            model = session.get(JobModel, job_id)
            if model is None:
                return
            parameters = model.params
            parameters.update(values)
            model.params = parameters
            model.updated_at = datetime.utcnow()
            session.add(model)
            session.commit()

    def list_jobs(self, user_id: Optional[int] = None, limit: int = 50) -> list[Job]:
        statement = select(JobModel).order_by(col(JobModel.created_at).desc(), col(JobModel.id).desc())
        if user_id is not None:
            statement = statement.where(JobModel.user_id == user_id)
        with session_scope(self._engine) as session:
            return [self._to_entity(model) for model in session.exec(statement.limit(limit)).all()]

    def find_last_finished_at(
        self, job_type: JobType, user_id: Optional[int] = None
    ) -> Optional[datetime]:
        statement = (
            select(JobModel.updated_at)
            .where(JobModel.type == job_type.value, JobModel.status == JobStatus.DONE.value)
            .order_by(col(JobModel.updated_at).desc())
        )
        if user_id is not None:
            statement = statement.where(JobModel.user_id == user_id)
        with session_scope(self._engine) as session:
            return session.exec(statement).first()

    def reset_stale(self, older_than: timedelta, now: Optional[datetime] = None) -> int:
        """
        Remet en attente les jobs in_progress sans activite depuis older_than.

        Operation de maintenance (processus mort en cours de job) ; le worker
        ne l'appelle jamais. Le job est rejoue de zero, l'idempotence des
        imports garantit le meme etat final.
        """
        now = now or datetime.utcnow()
        cutoff = now - older_than
        with session_scope(self._engine) as session:
            result = session.execute(
                update(JobModel)
                .where(
                    col(JobModel.status) == JobStatus.IN_PROGRESS.value,
                    col(JobModel.updated_at) < cutoff,
                )
                .values(status=JobStatus.WAITING.value, updated_at=now)
            )
            session.commit()
        reset = result.rowcount or 0
        if reset:
            logger.warning("Jobs bloques remis en attente", count=reset, cutoff=cutoff.isoformat())
        return reset

"""
Entités de la file de jobs.

Un job est une unite de travail asynchrone (import, rafraichissement) avec
un cycle de vie monotone : waiting -> in_progress -> done | failed.
Les etats done et failed sont terminaux.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# Cles reservees dans les parametres d'un job
FAILURE_KEY = "_failure"
SUMMARY_KEY = "_summary"


class JobType(Enum):
    """Types de jobs supportes par le worker."""

    MEDIA_SERVER_REFRESH = "media-server-refresh"
    SOCIAL_IMPORT_HISTORY = "social-import-history"
    SOCIAL_IMPORT_RATINGS = "social-import-ratings"
    CSV_IMPORT_HISTORY = "csv-import-history"
    CSV_IMPORT_RATINGS = "csv-import-ratings"
    METADATA_REFRESH = "metadata-refresh"
    POSTER_CACHE_REFRESH = "poster-cache-refresh"

    @property
    def is_user_scoped(self) -> bool:
        """Vrai si le job porte sur les donnees d'un utilisateur."""
        return self not in (JobType.METADATA_REFRESH, JobType.POSTER_CACHE_REFRESH)


class JobStatus(Enum):
    """Statut d'un job dans la file."""

    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Vrai pour done et failed."""
        return self in (JobStatus.DONE, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        """
        Verifie qu'une transition respecte le cycle de vie.

        waiting -> in_progress (claim), waiting -> failed (annulation),
        in_progress -> done | failed. Aucun etat terminal ne transitionne.
        """
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.WAITING: frozenset({JobStatus.IN_PROGRESS, JobStatus.FAILED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.DONE, JobStatus.FAILED}),
    JobStatus.DONE: frozenset(),
    JobStatus.FAILED: frozenset(),
}


@dataclass
class Job:
    """
    Job persistant de la file.

    Attributs :
        id : Identifiant du job
        user_id : Utilisateur concerne, None pour les jobs systeme
        type : Type de job (determine la routine executee)
        status : Statut courant
        parameters : Parametres opaques (serialises en JSON)
        created_at : Date de creation (ordre FIFO)
        updated_at : Date de derniere transition
    """

    type: JobType
    id: Optional[int] = None
    user_id: Optional[int] = None
    status: JobStatus = JobStatus.WAITING
    parameters: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def failure(self) -> Optional[dict[str, Any]]:
        """Type et message de l'erreur ayant fait echouer le job."""
        return self.parameters.get(FAILURE_KEY)

    @property
    def summary(self) -> Optional[dict[str, Any]]:
        """Compteurs applied/skipped/failed du dernier lot traite."""
        return self.parameters.get(SUMMARY_KEY)

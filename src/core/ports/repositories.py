"""
Interfaces ports pour les repositories.

Interfaces abstraites (ports) définissant les contrats pour la persistance des données.
Les implémentations (adaptateurs) fournissent les mécanismes de stockage concrets
(SQLite ou MySQL via SQLModel).

Les repositories de données (films, historique, notes, cache média) n'effectuent
aucun commit : la portée transactionnelle est donnée par IStorage.transaction().
Les repositories de jobs et d'identifiants committent chaque opération pour que
leurs changements soient visibles immédiatement des autres workers.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime, timedelta
from typing import Any, Optional

from src.core.entities.history import Rating
from src.core.entities.job import Job, JobStatus, JobType
from src.core.entities.media import Movie
from src.core.entities.media_server import MediaServerCacheEntry
from src.core.entities.user import JellyfinCredentials, TraktCredentials


class IMovieRepository(ABC):
    """
    Interface de stockage des films canoniques.

    Les recherches par identifiant non unique (imdb_id) retournent le film
    dont les métadonnées sont les plus récentes.
    """

    @abstractmethod
    def get_by_id(self, movie_id: int) -> Optional[Movie]:
        """Récupère un film par son ID canonique."""
        ...

    @abstractmethod
    def get_by_tmdb_id(self, tmdb_id: int) -> Optional[Movie]:
        """Récupère un film par son ID TMDB."""
        ...

    @abstractmethod
    def get_by_imdb_id(self, imdb_id: str) -> Optional[Movie]:
        """Récupère un film par son ID IMDb."""
        ...

    @abstractmethod
    def get_by_trakt_id(self, trakt_id: int) -> Optional[Movie]:
        """Récupère un film par son ID Trakt."""
        ...

    @abstractmethod
    def get_by_jellyfin_id(self, jellyfin_id: str) -> Optional[Movie]:
        """Récupère un film par son ID d'item Jellyfin."""
        ...

    @abstractmethod
    def save(self, movie: Movie) -> Movie:
        """Sauvegarde un film (insertion ou mise à jour par ID ou tmdb_id)."""
        ...

    @abstractmethod
    def touch(self, movie_id: int, at: datetime) -> None:
        """Met à jour la date de dernier rafraîchissement TMDB."""
        ...

    @abstractmethod
    def list_least_recently_updated(self, limit: int) -> list[Movie]:
        """Liste les films par date de rafraîchissement TMDB croissante."""
        ...

    @abstractmethod
    def list_with_poster(self, limit: Optional[int] = None) -> list[Movie]:
        """Liste les films ayant un poster TMDB."""
        ...


class IWatchHistoryRepository(ABC):
    """Interface de stockage des visionnages (user, movie, jour) -> plays."""

    @abstractmethod
    def get_plays(self, user_id: int, movie_id: int, watch_date: date) -> Optional[int]:
        """Nombre de lectures pour le jour, None si aucune ligne."""
        ...

    @abstractmethod
    def increment_plays(self, user_id: int, movie_id: int, watch_date: date) -> int:
        """Incrémente (ou crée à 1) et retourne le nouveau nombre de lectures."""
        ...

    @abstractmethod
    def set_plays(self, user_id: int, movie_id: int, watch_date: date, plays: int) -> None:
        """Fixe le nombre exact de lectures (crée la ligne si absente)."""
        ...

    @abstractmethod
    def count_plays(self, user_id: int) -> int:
        """Total des lectures d'un utilisateur."""
        ...


class IRatingRepository(ABC):
    """Interface de stockage des notes personnelles."""

    @abstractmethod
    def get(self, user_id: int, movie_id: int) -> Optional[Rating]:
        """Récupère la note d'un utilisateur pour un film."""
        ...

    @abstractmethod
    def save(self, rating: Rating) -> None:
        """Insère ou met à jour la note."""
        ...

    @abstractmethod
    def delete(self, user_id: int, movie_id: int) -> bool:
        """Supprime la note. Retourne True si une ligne a été supprimée."""
        ...


class IMediaServerCacheRepository(ABC):
    """Interface du cache par utilisateur des items du serveur média."""

    @abstractmethod
    def list_for_user(self, user_id: int) -> dict[str, MediaServerCacheEntry]:
        """Instantané du cache indexé par ID d'item."""
        ...

    @abstractmethod
    def replace(self, entry: MediaServerCacheEntry) -> None:
        """Supprime l'entrée existante (user, item) puis insère la nouvelle."""
        ...

    @abstractmethod
    def delete_except(self, user_id: int, keep_item_ids: set[str]) -> int:
        """Supprime les entrées absentes de keep_item_ids. Retourne le nombre supprimé."""
        ...


class IStorage(ABC):
    """
    Accès aux repositories de données partageant une même transaction.

    Usage :
        with storage.transaction():
            storage.watch_history.increment_plays(...)
            storage.ratings.save(...)
    """

    movies: IMovieRepository
    watch_history: IWatchHistoryRepository
    ratings: IRatingRepository
    media_server_cache: IMediaServerCacheRepository

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """
        Portée transactionnelle tout-ou-rien.

        Commit en sortie normale, rollback sur exception ; les erreurs de la
        base sont converties en StorageError.
        """
        ...


class IJobRepository(ABC):
    """
    Interface de la file de jobs persistante.

    Les transitions d'état sont des UPDATE gardés par un prédicat de statut.
    """

    @abstractmethod
    def create(self, job: Job) -> Job:
        """Insère un job en attente."""
        ...

    @abstractmethod
    def get(self, job_id: int) -> Optional[Job]:
        """Récupère un job par ID."""
        ...

    @abstractmethod
    def get_status(self, job_id: int) -> Optional[JobStatus]:
        """Statut courant lu en base (non mis en cache)."""
        ...

    @abstractmethod
    def find_oldest_waiting(self) -> Optional[Job]:
        """Job en attente le plus ancien (FIFO par created_at)."""
        ...

    @abstractmethod
    def claim(self, job_id: int) -> bool:
        """waiting -> in_progress. True si exactement une ligne a été modifiée."""
        ...

    @abstractmethod
    def mark_done(self, job_id: int) -> bool:
        """in_progress -> done."""
        ...

    @abstractmethod
    def mark_failed(self, job_id: int, failure: dict[str, Any]) -> bool:
        """in_progress -> failed, en stockant failure sous parameters._failure."""
        ...

    @abstractmethod
    def terminate(self, job_id: int, reason: str) -> bool:
        """Termine un job waiting ou in_progress depuis l'extérieur."""
        ...

    @abstractmethod
    def update_parameters(self, job_id: int, values: dict[str, Any]) -> None:
        """Fusionne des valeurs dans les paramètres du job."""
        ...

    @abstractmethod
    def list_jobs(self, user_id: Optional[int] = None, limit: int = 50) -> list[Job]:
        """Jobs les plus récents, filtrés par utilisateur si fourni."""
        ...

    @abstractmethod
    def find_last_finished_at(
        self, job_type: JobType, user_id: Optional[int] = None
    ) -> Optional[datetime]:
        """Date du dernier job terminé avec succès de ce type."""
        ...

    @abstractmethod
    def reset_stale(self, older_than: timedelta, now: Optional[datetime] = None) -> int:
        """Remet en attente les jobs in_progress inactifs depuis older_than (janitor externe)."""
        ...


class ICredentialRepository(ABC):
    """Interface du stockage des identifiants fournisseurs par utilisateur."""

    @abstractmethod
    def get_trakt_credentials(self, user_id: int) -> Optional[TraktCredentials]:
        """Token Trakt valide de l'utilisateur, None si absent ou invalidé."""
        ...

    @abstractmethod
    def save_trakt_token(self, credentials: TraktCredentials) -> None:
        """Réécrit un token rafraîchi (verrou de ligne)."""
        ...

    @abstractmethod
    def get_jellyfin_credentials(self, user_id: int) -> Optional[JellyfinCredentials]:
        """Accès Jellyfin valide de l'utilisateur, None si absent ou invalidé."""
        ...

    @abstractmethod
    def mark_invalid(self, user_id: int, provider: str) -> None:
        """Marque les identifiants d'un fournisseur comme invalides."""
        ...

"""
Rafraichissement periodique des metadonnees des films depuis TMDB.

Les films sont traites du moins recemment rafraichi au plus recent, avec
un plafond par execution. Un film inconnu de TMDB (404) est laisse intact ;
un film en erreur transitoire ou refuse par TMDB (4xx) est retente au cycle
suivant.

Un film laisse intact garde son updated_at_tmdb et reste donc en tete de la
file : si au moins `limit` films repondent 404, les executions suivantes ne
depassent plus ces films. Le warning "Film absent de TMDB" donne leur
tmdb_id pour les corriger ou les supprimer a la main.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from src.core.exceptions import ProtocolError, RateLimitError, TransientNetworkError
from src.core.ports.api_clients import IMetadataClient
from src.core.ports.repositories import IStorage
from src.services.job_context import JobContext
from src.services.metadata_cache import MetadataCache

DEFAULT_REFRESH_LIMIT = 200


@dataclass
class RefreshStats:
    """Statistiques du rafraichissement des metadonnees."""

    total: int = 0
    refreshed: int = 0
    not_found: int = 0
    skipped: int = 0


class MetadataRefresherService:
    """
    Job metadata-refresh.

    Reutilise le cache de metadonnees pour l'ecriture champ par champ ; les
    details sont toujours demandes a l'API (cache HTTP contourne).
    """

    def __init__(
        self,
        storage: IStorage,
        metadata_client: IMetadataClient,
        context: JobContext,
    ) -> None:
        self._storage = storage
        self._metadata_client = metadata_client
        self._metadata_cache = MetadataCache(storage.movies, metadata_client)
        self._context = context

    async def refresh(self, limit: Optional[int] = None) -> RefreshStats:
        """
        Rafraichit au plus limit films.

        Args:
            limit: Plafond de films (defaut: 200)

        Returns:
            Statistiques du rafraichissement

        Raises:
            AuthError: Cle TMDB refusee, le job echoue
        """
        stats = RefreshStats()
        movies = self._storage.movies.list_least_recently_updated(limit or DEFAULT_REFRESH_LIMIT)
        stats.total = len(movies)
        log = self._context.logger

        for movie in movies:
            self._context.checkpoint()

            try:
                details = await self._metadata_client.get_details(movie.tmdb_id, use_cache=False)
            except (TransientNetworkError, RateLimitError, ProtocolError) as e:
                log.warning("Rafraichissement reporte", tmdb_id=movie.tmdb_id, error=str(e))
                stats.skipped += 1
                continue

            if details is None:
                log.warning("Film absent de TMDB, laisse intact", tmdb_id=movie.tmdb_id, movie_id=movie.id)
                stats.not_found += 1
                continue

            with self._storage.transaction():
                self._metadata_cache.upsert(details)
            stats.refreshed += 1

        self._context.report(asdict(stats))
        log.info("Metadonnees rafraichies", **asdict(stats))
        return stats

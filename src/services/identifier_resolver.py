"""
Resolution des identifiants fournisseurs vers l'ID canonique d'un film.

Un CanonicalPartial porte un ou plusieurs identifiants (TMDB, IMDb, Trakt,
Jellyfin) ou seulement un titre. Le resolveur retrouve le film canonique
correspondant, complete ses IDs manquants, et cree le film depuis TMDB
quand il est inconnu.
"""

from typing import Optional

from loguru import logger

from src.core.entities.media import Movie
from src.core.exceptions import UnresolvableIdentifier
from src.core.ports.api_clients import IMetadataClient
from src.core.ports.repositories import IMovieRepository
from src.core.value_objects import CanonicalPartial
from src.services.metadata_cache import MetadataCache

_MemoKey = tuple[Optional[int], Optional[str], Optional[int], Optional[str], str, Optional[int]]


class IdentifierResolver:
    """
    Resolveur d'identifiants, memoise le temps d'un job.

    Algorithme :
    1. Recherche locale par tmdb_id, imdb_id, trakt_id puis jellyfin_id
    2. Trouve : complete les IDs absents du film (si aucun autre film ne les porte)
    3. Absent avec tmdb_id : creation depuis les details TMDB
    4. Absent sans tmdb_id : /find par imdb_id, puis recherche titre + annee
       (premier resultat), puis etape 3
    5. Rien trouve : UnresolvableIdentifier
    """

    def __init__(
        self,
        metadata_cache: MetadataCache,
        movies: IMovieRepository,
        metadata_client: IMetadataClient,
    ) -> None:
        self._cache = metadata_cache
        self._movies = movies
        self._metadata_client = metadata_client
        self._memo: dict[_MemoKey, Optional[int]] = {}

    @staticmethod
    def _memo_key(partial: CanonicalPartial) -> _MemoKey:
        return (
            partial.tmdb_id,
            partial.imdb_id,
            partial.trakt_id,
            partial.jellyfin_id,
            partial.title.strip().lower(),
            partial.year,
        )

    async def resolve(self, partial: CanonicalPartial) -> int:
        """
        Retourne l'ID canonique du film designe par partial.

        Raises:
            UnresolvableIdentifier: Aucun film ne correspond
        """
        key = self._memo_key(partial)
        if key in self._memo:
            movie_id = self._memo[key]
            if movie_id is None:
                raise UnresolvableIdentifier(f"No movie for {partial.describe()}")
            return movie_id

        try:
            movie = await self._resolve(partial)
        except UnresolvableIdentifier:
            self._memo[key] = None
            raise

        self._memo[key] = movie.id
        return movie.id

    async def _resolve(self, partial: CanonicalPartial) -> Movie:
        movie = self._cache.find(
            tmdb_id=partial.tmdb_id,
            imdb_id=partial.imdb_id,
            trakt_id=partial.trakt_id,
            jellyfin_id=partial.jellyfin_id,
        )
        if movie is not None:
            return self._backfill(movie, partial)

        tmdb_id = partial.tmdb_id or await self._lookup_tmdb_id(partial)
        if tmdb_id is None:
            raise UnresolvableIdentifier(f"No TMDB match for {partial.describe()}")

        # L'ID trouve par recherche peut designer un film deja connu
        movie = self._movies.get_by_tmdb_id(tmdb_id)
        if movie is None:
            movie = await self._cache.fetch(tmdb_id)
            if movie is None:
                raise UnresolvableIdentifier(f"TMDB has no movie {tmdb_id}")
            logger.info("Nouveau film canonique", tmdb_id=tmdb_id, title=movie.title)

        return self._backfill(movie, partial)

    async def _lookup_tmdb_id(self, partial: CanonicalPartial) -> Optional[int]:
        """ID TMDB via l'ID IMDb, sinon via la recherche par titre."""
        if partial.imdb_id:
            tmdb_id = await self._metadata_client.find_by_imdb_id(partial.imdb_id)
            if tmdb_id is not None:
                return tmdb_id

        title = partial.title.strip()
        if not title:
            return None

        results = await self._metadata_client.search(title, year=partial.year)
        if not results:
            logger.info("Titre introuvable sur TMDB", title=title, year=partial.year)
            return None
        try:
            return int(results[0].id)
        except ValueError:
            return None

    def _backfill(self, movie: Movie, partial: CanonicalPartial) -> Movie:
        """Complete les IDs absents du film avec ceux du partial."""
        changed = False

        if partial.imdb_id and not movie.imdb_id:
            movie.imdb_id = partial.imdb_id
            changed = True

        if partial.trakt_id is not None and movie.trakt_id is None:
            owner = self._movies.get_by_trakt_id(partial.trakt_id)
            if owner is None:
                movie.trakt_id = partial.trakt_id
                changed = True
            elif owner.id != movie.id:
                logger.warning(
                    "ID Trakt deja attribue", trakt_id=partial.trakt_id, owner=owner.id, movie_id=movie.id
                )

        if partial.jellyfin_id and movie.jellyfin_id is None:
            owner = self._movies.get_by_jellyfin_id(partial.jellyfin_id)
            if owner is None:
                movie.jellyfin_id = partial.jellyfin_id
                changed = True

        if changed:
            movie = self._cache.save(movie)
        return movie

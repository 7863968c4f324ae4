"""
Cache local des metadonnees de films (films canoniques).

Point d'entree unique pour lire un film par son ID canonique ou par un ID
fournisseur, et pour creer ou mettre a jour un film a partir des details
TMDB. Les champs de metadonnees ne sont ecrits qu'ici.
"""

from datetime import datetime
from typing import Optional

from loguru import logger

from src.core.entities.media import Movie
from src.core.ports.api_clients import IMetadataClient, MovieDetails
from src.core.ports.repositories import IMovieRepository


class MetadataCache:
    """
    Lecture et ecriture des films canoniques.

    Example:
        cache = MetadataCache(storage.movies, tmdb_client)
        movie = cache.find(tmdb_id=27205) or await cache.fetch(27205)
    """

    def __init__(self, movies: IMovieRepository, metadata_client: IMetadataClient) -> None:
        self._movies = movies
        self._metadata_client = metadata_client

    def get(self, movie_id: int) -> Optional[Movie]:
        """Film par ID canonique."""
        return self._movies.get_by_id(movie_id)

    def find(
        self,
        tmdb_id: Optional[int] = None,
        imdb_id: Optional[str] = None,
        trakt_id: Optional[int] = None,
        jellyfin_id: Optional[str] = None,
    ) -> Optional[Movie]:
        """
        Film par ID fournisseur, du plus au moins fiable.

        Ordre : tmdb, imdb, trakt, jellyfin. Le premier ID present qui
        correspond a un film l'emporte.
        """
        probes = (
            (tmdb_id, self._movies.get_by_tmdb_id),
            (imdb_id, self._movies.get_by_imdb_id),
            (trakt_id, self._movies.get_by_trakt_id),
            (jellyfin_id, self._movies.get_by_jellyfin_id),
        )
        for value, lookup in probes:
            if value is None:
                continue
            movie = lookup(value)
            if movie is not None:
                return movie
        return None

    def upsert(self, details: MovieDetails, now: Optional[datetime] = None) -> Movie:
        """
        Cree ou met a jour champ par champ le film correspondant a details.tmdb_id.

        Les IDs Trakt et Jellyfin existants sont conserves ; updated_at_tmdb
        est positionne a now.
        """
        movie = self._movies.get_by_tmdb_id(details.tmdb_id) or Movie(tmdb_id=details.tmdb_id)
        movie.title = details.title
        movie.tagline = details.tagline
        movie.overview = details.overview
        movie.original_language = details.original_language
        movie.release_date = details.release_date
        movie.runtime = details.runtime
        movie.vote_average = details.vote_average
        movie.vote_count = details.vote_count
        movie.poster_path = details.poster_path
        movie.genres = details.genres
        if details.imdb_id:
            movie.imdb_id = details.imdb_id
        movie.updated_at_tmdb = now or datetime.utcnow()
        return self._movies.save(movie)

    def touch(self, movie_id: int, now: Optional[datetime] = None) -> None:
        """Marque le film comme rafraichi sans modifier ses metadonnees."""
        self._movies.touch(movie_id, now or datetime.utcnow())

    def save(self, movie: Movie) -> Movie:
        """Sauvegarde les IDs fournisseurs d'un film existant."""
        return self._movies.save(movie)

    async def fetch(self, tmdb_id: int, use_cache: bool = True) -> Optional[Movie]:
        """
        Recupere les details TMDB et cree ou met a jour le film.

        Returns:
            Le film, ou None si TMDB ne connait pas cet ID
        """
        details = await self._metadata_client.get_details(tmdb_id, use_cache=use_cache)
        if details is None:
            return None
        movie = self.upsert(details)
        logger.debug("Film enregistre depuis TMDB", tmdb_id=tmdb_id, movie_id=movie.id)
        return movie

"""
Client TMDB pour la recherche et la recuperation des metadonnees de films.

Implemente l'interface IMetadataClient. TMDB est la seule source des champs
canoniques d'un film. Utilise le cache persistant et le mecanisme de retry.

Usage:
    cache = APICache()
    client = TMDBClient(api_key="your_key", cache=cache)
    results = await client.search("Avatar", year=2009)
    details = await client.get_details(19995)
    await client.close()
"""

from datetime import date
from typing import Any, Optional

import httpx
from loguru import logger

from src.adapters.api.cache import APICache
from src.adapters.api.retry import decode_json, request_with_retry
from src.core.exceptions import AuthError, ProtocolError
from src.core.ports.api_clients import IMetadataClient, MovieDetails, SearchResult


def _parse_release_date(value: Any) -> Optional[date]:
    """Date TMDB au format YYYY-MM-DD, None si vide ou invalide."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


class TMDBClient(IMetadataClient):
    """
    Client API TMDB pour les metadonnees de films.

    Implemente IMetadataClient avec:
    - Recherche de films par titre (avec filtre annee optionnel)
    - Recuperation des details complets d'un film
    - Correspondance IMDb -> TMDB via /find
    - Telechargement des posters
    - Cache persistant (24h recherches, 7j details)
    - Retry automatique (429, 5xx, erreurs reseau)
    """

    TMDB_BASE_URL = "https://api.themoviedb.org/3"
    TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/original"

    def __init__(
        self,
        api_key: Optional[str],
        cache: APICache,
        base_url: str = TMDB_BASE_URL,
        image_base_url: str = TMDB_IMAGE_BASE_URL,
        language: str = "en-US",
        timeout: float = 30.0,
        max_attempts: int = 5,
        initial_wait: float = 1.0,
        max_wait: float = 60.0,
    ) -> None:
        """
        Initialise le client TMDB.

        Args:
            api_key: Cle API v3 ou Read Access Token v4
            cache: Instance APICache pour le caching des resultats
            base_url: URL de l'API v3
            image_base_url: Prefixe des URLs de posters
            language: Langue des metadonnees
            timeout: Timeout par requete en secondes
            max_attempts, initial_wait, max_wait: Politique de retry
        """
        self._api_key = api_key
        self._cache = cache
        self._base_url = base_url
        self._image_base_url = image_base_url.rstrip("/")
        self._language = language
        self._timeout = timeout
        self._retry = {
            "max_attempts": max_attempts,
            "initial_wait": initial_wait,
            "max_wait": max_wait,
        }
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """
        Retourne le client HTTP, le cree si necessaire (lazy init).

        Supporte les deux modes d'authentification TMDB:
        - API Key v3 (32 caracteres hex) : passe en parametre api_key
        - Read Access Token v4 (long JWT) : passe en header Bearer
        """
        if self._client is None or self._client.is_closed:
            if not self._api_key:
                raise AuthError("tmdb", "TMDB API key is not configured")
            is_v4_token = len(self._api_key) > 40

            headers = {"Accept": "application/json"}
            params = {}

            if is_v4_token:
                headers["Authorization"] = f"Bearer {self._api_key}"
            else:
                params["api_key"] = self._api_key

            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                params=params,
                timeout=self._timeout,
            )
        return self._client

    async def _get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await request_with_retry(
            self._get_client(), "GET", path, provider=self.source, **self._retry, **kwargs
        )

    @property
    def source(self) -> str:
        """Retourne l'identifiant de la source API."""
        return "tmdb"

    async def search(
        self,
        query: str,
        year: Optional[int] = None,
    ) -> list[SearchResult]:
        """
        Recherche des films par titre.

        Cache-first : les resultats sont caches pour 24 heures.

        Args:
            query: Titre du film a rechercher
            year: Annee de sortie pour filtrer

        Returns:
            Liste de SearchResult dans l'ordre de pertinence TMDB
        """
        cache_key = APICache.search_key(query, year)

        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        params: dict[str, Any] = {
            "query": query,
            "language": self._language,
            "include_adult": "false",
        }
        if year:
            params["year"] = year

        response = await self._get("/search/movie", params=params)
        data = decode_json(response, self.source)

        results = []
        for item in data.get("results", []):
            if "id" not in item:
                continue
            release = _parse_release_date(item.get("release_date"))
            localized_title = item.get("title", "")
            original_title = item.get("original_title", "")

            results.append(
                SearchResult(
                    id=str(item["id"]),
                    title=localized_title or original_title,
                    original_title=original_title if original_title != localized_title else None,
                    year=release.year if release else None,
                    source=self.source,
                )
            )

        await self._cache.set_search(cache_key, results)
        return results

    async def get_details(self, tmdb_id: int, use_cache: bool = True) -> Optional[MovieDetails]:
        """
        Recupere les details complets d'un film.

        Args:
            tmdb_id: ID TMDB du film
            use_cache: False pour forcer l'appel API (l'entree est reecrite)

        Returns:
            MovieDetails, ou None si TMDB repond 404

        Raises:
            ProtocolError: Si la reponse n'a pas la forme attendue
        """
        cache_key = APICache.details_key(tmdb_id)

        if use_cache:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            response = await self._get(
                f"/movie/{tmdb_id}", params={"language": self._language}
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.debug("Film absent de TMDB", tmdb_id=tmdb_id)
                return None
            raise

        details = self._parse_details(decode_json(response, self.source))
        await self._cache.set_details(cache_key, details)
        return details

    def _parse_details(self, data: Any) -> MovieDetails:
        """Convertit la reponse /movie/{id} en MovieDetails."""
        if not isinstance(data, dict) or not isinstance(data.get("id"), int):
            raise ProtocolError("TMDB movie payload without numeric id")

        genres = tuple(
            genre["name"] for genre in data.get("genres") or [] if genre.get("name")
        )

        return MovieDetails(
            tmdb_id=data["id"],
            title=data.get("title") or data.get("original_title") or "",
            tagline=data.get("tagline") or None,
            overview=data.get("overview") or None,
            original_language=data.get("original_language"),
            release_date=_parse_release_date(data.get("release_date")),
            runtime=data.get("runtime") or None,
            vote_average=data.get("vote_average"),
            vote_count=data.get("vote_count"),
            poster_path=data.get("poster_path"),
            imdb_id=data.get("imdb_id") or None,
            genres=genres,
        )

    async def find_by_imdb_id(self, imdb_id: str) -> Optional[int]:
        """
        Recherche l'ID TMDB d'un film via son ID IMDb.

        Utilise l'endpoint /find/{external_id} avec external_source=imdb_id.

        Returns:
            ID TMDB du premier film trouve, None sinon
        """
        try:
            response = await self._get(
                f"/find/{imdb_id}",
                params={"external_source": "imdb_id"},
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise

        data = decode_json(response, self.source)
        movie_results = data.get("movie_results") or []
        if movie_results and isinstance(movie_results[0].get("id"), int):
            return movie_results[0]["id"]
        return None

    def poster_url(self, poster_path: str) -> str:
        """URL complete d'un poster TMDB."""
        return f"{self._image_base_url}/{poster_path.lstrip('/')}"

    async def download_image(self, poster_path: str) -> Optional[bytes]:
        """
        Telecharge un poster depuis le CDN d'images TMDB.

        Returns:
            Contenu de l'image, ou None si le CDN repond 404
        """
        try:
            response = await request_with_retry(
                self._get_client(),
                "GET",
                self.poster_url(poster_path),
                provider=self.source,
                **self._retry,
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        return response.content

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

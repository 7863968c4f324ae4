"""
Cache persistant des reponses TMDB avec TTL differencies.

Le cache utilise diskcache pour la persistence sur disque : il est partage
entre les processus workers et conserve entre les redemarrages.

TTL par defaut:
- Recherches (SEARCH_TTL): 24 heures
- Details (DETAILS_TTL): 7 jours, le rafraichissement des metadonnees
  contourne le cache et reecrit l'entree
"""

import asyncio
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any, Optional

from diskcache import Cache


class APICache:
    """
    Cache asynchrone avec TTL pour les appels API.

    Les operations diskcache (SQLite) sont executees dans le pool de threads
    de la boucle pour ne pas la bloquer.

    Example:
        cache = APICache(cache_dir=".cache/api")
        key = APICache.search_key("Inception", 2010)
        await cache.set_search(key, results)
        data = await cache.get(key)
    """

    SEARCH_TTL = 24 * 60 * 60  # 24 heures
    DETAILS_TTL = 7 * 24 * 60 * 60  # 7 jours

    def __init__(self, cache_dir: str | Path = ".cache/api") -> None:
        """
        Args:
            cache_dir: Chemin vers le repertoire du cache (cree si inexistant)
        """
        self._cache = Cache(str(cache_dir))

    @staticmethod
    def search_key(query: str, year: Optional[int] = None) -> str:
        """Cle d'une recherche par titre, insensible a la casse."""
        return f"tmdb:search:{query.strip().lower()}:{year or ''}"

    @staticmethod
    def details_key(tmdb_id: int) -> str:
        return f"tmdb:details:{tmdb_id}"

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def get(self, key: str) -> Optional[Any]:
        """Recupere une valeur, None si absente ou expiree."""
        return await self._run(self._cache.get, key)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Stocke une valeur (picklable) pour ttl secondes."""
        await self._run(self._cache.set, key, value, expire=ttl)

    async def set_search(self, key: str, value: Any) -> None:
        await self.set(key, value, self.SEARCH_TTL)

    async def set_details(self, key: str, value: Any) -> None:
        await self.set(key, value, self.DETAILS_TTL)

    async def delete(self, key: str) -> bool:
        """Supprime une entree. Retourne True si elle existait."""
        return await self._run(self._cache.delete, key)

    async def clear(self) -> None:
        await self._run(self._cache.clear)

    def close(self) -> None:
        """Ferme la connexion au cache (a appeler a la fin)."""
        self._cache.close()

"""
Cache local des posters TMDB.

Telecharge les posters des films qui n'en ont pas encore de copie dans le
repertoire de cache.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Protocol

from src.core.exceptions import RateLimitError, TransientNetworkError
from src.core.ports.repositories import IMovieRepository
from src.services.job_context import JobContext


class IPosterDownloader(Protocol):
    """Telechargement d'une image a partir du chemin TMDB."""

    async def download_image(self, poster_path: str) -> Optional[bytes]: ...


@dataclass
class PosterCacheStats:
    """Statistiques du cache des posters."""

    total: int = 0
    downloaded: int = 0
    present: int = 0
    missing: int = 0
    failed: int = 0


class PosterCacheService:
    """Job poster-cache-refresh."""

    def __init__(
        self,
        movies: IMovieRepository,
        downloader: IPosterDownloader,
        cache_dir: Path,
        context: JobContext,
    ) -> None:
        self._movies = movies
        self._downloader = downloader
        self._cache_dir = Path(cache_dir)
        self._context = context

    def poster_file(self, poster_path: str) -> Path:
        """Chemin local d'un poster (ex: /abc.jpg -> <cache_dir>/abc.jpg)."""
        return self._cache_dir / Path(poster_path).name

    async def refresh(self, force: bool = False) -> PosterCacheStats:
        """
        Telecharge les posters absents du cache.

        Args:
            force: Retelecharge aussi les posters deja presents
        """
        stats = PosterCacheStats()
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        movies = self._movies.list_with_poster()
        stats.total = len(movies)
        log = self._context.logger

        for index, movie in enumerate(movies):
            # Point de controle tous les 50 films
            if index % 50 == 0:
                self._context.checkpoint()

            target = self.poster_file(movie.poster_path)
            if target.exists() and not force:
                stats.present += 1
                continue

            try:
                content = await self._downloader.download_image(movie.poster_path)
            except (TransientNetworkError, RateLimitError) as e:
                log.warning("Poster non telecharge", movie_id=movie.id, error=str(e))
                stats.failed += 1
                continue

            if content is None:
                stats.missing += 1
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
            stats.downloaded += 1

        self._context.report(asdict(stats))
        log.info("Cache des posters rafraichi", **asdict(stats))
        return stats

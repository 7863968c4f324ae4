"""
Media metadata entities.

The canonical movie as owned by the local metadata cache, keyed by its
internal id and carrying the identifiers of every provider (TMDB, Trakt,
Jellyfin, IMDb).
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass
class Movie:
    """
    Canonical movie.

    Metadata fields are owned by TMDB and only written by the metadata cache
    (creation) and the metadata refresher (updates).

    Attributes:
        id: Internal database ID (canonical id)
        tmdb_id: The Movie Database ID, unique and mandatory
        trakt_id: Trakt ID (unique, optional)
        jellyfin_id: Jellyfin item ID (unique, optional)
        imdb_id: IMDb ID (ttXXXXXXX)
        title: Title as returned by TMDB
        tagline: Short tagline
        overview: Plot summary
        original_language: ISO 639-1 code of the original language
        release_date: Release date
        runtime: Runtime in minutes
        vote_average: TMDB average rating (0-10)
        vote_count: TMDB vote count
        poster_path: Path to poster image on TMDB CDN
        genres: Tuple of genre names
        updated_at_tmdb: Last time the metadata was fetched from TMDB
    """

    id: Optional[int] = None
    tmdb_id: Optional[int] = None
    trakt_id: Optional[int] = None
    jellyfin_id: Optional[str] = None
    imdb_id: Optional[str] = None
    title: str = ""
    tagline: Optional[str] = None
    overview: Optional[str] = None
    original_language: Optional[str] = None
    release_date: Optional[date] = None
    runtime: Optional[int] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    poster_path: Optional[str] = None
    genres: tuple[str, ...] = ()
    updated_at_tmdb: Optional[datetime] = None

    @property
    def year(self) -> Optional[int]:
        """Release year, if known."""
        return self.release_date.year if self.release_date else None

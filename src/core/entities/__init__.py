"""
Business entities representing core domain concepts.

Entities are mutable objects with identity that persist over time.
They encapsulate business rules and behavior.

Exports:
- Movie: Canonical movie with metadata from TMDB
- WatchEvent: Plays of a movie by a user on one day
- Rating: Personal rating of a movie
- MediaServerItem / MediaServerCacheEntry: Jellyfin library snapshot
- Job, JobType, JobStatus: Persistent job queue
- TraktCredentials / JellyfinCredentials: Per-user provider access
"""

from src.core.entities.history import Rating, WatchEvent
from src.core.entities.job import Job, JobStatus, JobType
from src.core.entities.media import Movie
from src.core.entities.media_server import MediaServerCacheEntry, MediaServerItem
from src.core.entities.user import JellyfinCredentials, TraktCredentials

__all__ = [
    "Movie",
    "WatchEvent",
    "Rating",
    "MediaServerItem",
    "MediaServerCacheEntry",
    "Job",
    "JobType",
    "JobStatus",
    "TraktCredentials",
    "JellyfinCredentials",
]

"""
Implementations SQLModel des repositories.

Ce module contient les implementations concretes des interfaces repository
definies dans src/core/ports/repositories.py.

Chaque repository :
- Herite de l'interface ABC correspondante du domaine
- Recoit une session (donnees) ou un engine (jobs, identifiants) par injection
- Convertit entre entites de domaine (dataclass) et modeles DB (SQLModel)
"""

from src.infrastructure.persistence.repositories.credential_repository import (
    SQLModelCredentialRepository,
)
from src.infrastructure.persistence.repositories.job_repository import (
    SQLModelJobRepository,
)
from src.infrastructure.persistence.repositories.media_server_cache_repository import (
    SQLModelMediaServerCacheRepository,
)
from src.infrastructure.persistence.repositories.movie_repository import (
    SQLModelMovieRepository,
)
from src.infrastructure.persistence.repositories.rating_repository import (
    SQLModelRatingRepository,
)
from src.infrastructure.persistence.repositories.watch_history_repository import (
    SQLModelWatchHistoryRepository,
)

__all__ = [
    "SQLModelMovieRepository",
    "SQLModelWatchHistoryRepository",
    "SQLModelRatingRepository",
    "SQLModelMediaServerCacheRepository",
    "SQLModelJobRepository",
    "SQLModelCredentialRepository",
]

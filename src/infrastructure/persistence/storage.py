"""
Facade de stockage : repositories de donnees partageant une session.

Les imports ecrivent films, lectures, notes et cache media-server dans une
meme transaction tout-ou-rien par lot.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from src.core.exceptions import StorageError
from src.core.ports.repositories import IStorage
from src.infrastructure.persistence.repositories.media_server_cache_repository import (
    SQLModelMediaServerCacheRepository,
)
from src.infrastructure.persistence.repositories.movie_repository import SQLModelMovieRepository
from src.infrastructure.persistence.repositories.rating_repository import SQLModelRatingRepository
from src.infrastructure.persistence.repositories.watch_history_repository import (
    SQLModelWatchHistoryRepository,
)


class SQLModelStorage(IStorage):
    """
    Implementation SQLModel de IStorage.

    Une instance par job : la session est fermee par close().

    Example:
        storage = SQLModelStorage(engine)
        with storage.transaction():
            movie = storage.movies.get_by_tmdb_id(27205)
            storage.watch_history.increment_plays(user_id, movie.id, day)
        storage.close()
    """

    def __init__(self, engine: Engine) -> None:
        self._session = Session(engine)
        self.movies = SQLModelMovieRepository(self._session)
        self.watch_history = SQLModelWatchHistoryRepository(self._session)
        self.ratings = SQLModelRatingRepository(self._session)
        self.media_server_cache = SQLModelMediaServerCacheRepository(self._session)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error("Transaction annulee", error=str(e))
            raise StorageError(str(e)) from e
        except BaseException:
            self._session.rollback()
            raise

    def close(self) -> None:
        self._session.close()

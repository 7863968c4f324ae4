"""
Implementation SQLModel du repository de l'historique de visionnage.

Une ligne par (utilisateur, film, jour) avec un compteur de lectures.
"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from src.core.ports.repositories import IWatchHistoryRepository
from src.infrastructure.persistence.models import WatchDateModel


class SQLModelWatchHistoryRepository(IWatchHistoryRepository):
    """Repository SQLModel des lectures par jour."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get(self, user_id: int, movie_id: int, watch_date: date) -> Optional[WatchDateModel]:
        return self._session.get(WatchDateModel, (user_id, movie_id, watch_date))

    def get_plays(self, user_id: int, movie_id: int, watch_date: date) -> Optional[int]:
        model = self._get(user_id, movie_id, watch_date)
        return model.plays if model else None

    def increment_plays(self, user_id: int, movie_id: int, watch_date: date) -> int:
        model = self._get(user_id, movie_id, watch_date)
        if model is None:
            model = WatchDateModel(user_id=user_id, movie_id=movie_id, watched_at=watch_date, plays=1)
        else:
            model.plays += 1
        self._session.add(model)
        self._session.flush()
        return model.plays

    def set_plays(self, user_id: int, movie_id: int, watch_date: date, plays: int) -> None:
        if plays < 1:
            raise ValueError(f"plays must be >= 1, got {plays}")
        model = self._get(user_id, movie_id, watch_date)
        if model is None:
            model = WatchDateModel(user_id=user_id, movie_id=movie_id, watched_at=watch_date)
        model.plays = plays
        self._session.add(model)
        self._session.flush()

    def count_plays(self, user_id: int) -> int:
        statement = select(func.coalesce(func.sum(WatchDateModel.plays), 0)).where(
            WatchDateModel.user_id == user_id
        )
        return int(self._session.exec(statement).one())

"""
Implementation SQLModel du repository des notes personnelles.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Session

from src.core.entities.history import Rating, is_valid_rating
from src.core.ports.repositories import IRatingRepository
from src.infrastructure.persistence.models import RatingModel


class SQLModelRatingRepository(IRatingRepository):
    """Repository SQLModel des notes (une par utilisateur et par film)."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: int, movie_id: int) -> Optional[Rating]:
        model = self._session.get(RatingModel, (user_id, movie_id))
        if model is None:
            return None
        return Rating(
            user_id=model.user_id,
            movie_id=model.movie_id,
            value=model.rating,
            source=model.source,
        )

    def save(self, rating: Rating) -> None:
        if not is_valid_rating(rating.value):
            raise ValueError(f"Rating must be an integer in 1..10, got {rating.value!r}")
        model = self._session.get(RatingModel, (rating.user_id, rating.movie_id))
        if model is None:
            model = RatingModel(user_id=rating.user_id, movie_id=rating.movie_id, rating=rating.value)
        model.rating = rating.value
        model.source = rating.source
        model.updated_at = datetime.utcnow()
        self._session.add(model)
        self._session.flush()

    def delete(self, user_id: int, movie_id: int) -> bool:
        model = self._session.get(RatingModel, (user_id, movie_id))
        if model is None:
            return False
        self._session.delete(model)
        self._session.flush()
        return True

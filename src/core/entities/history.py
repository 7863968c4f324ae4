"""
Entités de l'historique personnel : visionnages et notes.

Une ligne WatchEvent represente toutes les lectures d'un film par un
utilisateur sur un jour calendaire donne. Une Rating est la note unique
d'un utilisateur pour un film.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

RATING_MIN = 1
RATING_MAX = 10


@dataclass
class WatchEvent:
    """
    Lectures d'un film par un utilisateur sur un jour.

    Unique sur (user_id, movie_id, watch_date) ; plays est toujours >= 1.
    """

    user_id: int
    movie_id: int
    watch_date: date
    plays: int = 1


@dataclass
class Rating:
    """
    Note personnelle d'un utilisateur pour un film.

    Attributs :
        value : Note entiere de 1 a 10
        source : Source ayant ecrit la note ("social", "csv", "media_server")
    """

    user_id: int
    movie_id: int
    value: int
    source: Optional[str] = None


def is_valid_rating(value: Optional[int]) -> bool:
    """Verifie qu'une note est un entier dans l'intervalle 1..10."""
    return isinstance(value, int) and not isinstance(value, bool) and RATING_MIN <= value <= RATING_MAX

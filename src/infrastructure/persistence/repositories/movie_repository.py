"""
Implementation SQLModel du repository Movie.

Implemente l'interface IMovieRepository pour la persistance des films
canoniques via SQLModel. Aucun commit ici : la transaction est portee par
SQLModelStorage.transaction().
"""

import json
from datetime import datetime
from typing import Optional

from sqlmodel import Session, col, select

from src.core.entities.media import Movie
from src.core.ports.repositories import IMovieRepository
from src.infrastructure.persistence.models import MovieModel


class SQLModelMovieRepository(IMovieRepository):
    """
    Repository SQLModel pour les films.

    Implemente IMovieRepository avec conversion bidirectionnelle
    entre l'entite Movie (domaine) et MovieModel (persistance).
    """

    def __init__(self, session: Session) -> None:
        """
        Initialise le repository avec une session SQLModel.

        Args :
            session : Session SQLModel active pour les operations DB
        """
        self._session = session

    def _to_entity(self, model: MovieModel) -> Movie:
        """Convertit un modele DB en entite domaine."""
        genres_list = json.loads(model.genres_json) if model.genres_json else []
        return Movie(
            id=model.id,
            tmdb_id=model.tmdb_id,
            trakt_id=model.trakt_id,
            jellyfin_id=model.jellyfin_id,
            imdb_id=model.imdb_id,
            title=model.title,
            tagline=model.tagline,
            overview=model.overview,
            original_language=model.original_language,
            release_date=model.release_date,
            runtime=model.runtime,
            vote_average=model.tmdb_vote_average,
            vote_count=model.tmdb_vote_count,
            poster_path=model.tmdb_poster_path,
            genres=tuple(genres_list),
            updated_at_tmdb=model.updated_at_tmdb,
        )

    @staticmethod
    def _apply(model: MovieModel, entity: Movie) -> None:
        """Copie les champs de l'entite sur le modele."""
        model.tmdb_id = entity.tmdb_id
        model.trakt_id = entity.trakt_id
        model.jellyfin_id = entity.jellyfin_id
        model.imdb_id = entity.imdb_id
        model.title = entity.title
        model.tagline = entity.tagline
        model.overview = entity.overview
        model.original_language = entity.original_language
        model.release_date = entity.release_date
        model.runtime = entity.runtime
        model.tmdb_vote_average = entity.vote_average
        model.tmdb_vote_count = entity.vote_count
        model.tmdb_poster_path = entity.poster_path
        model.genres_json = json.dumps(list(entity.genres)) if entity.genres else None
        model.updated_at_tmdb = entity.updated_at_tmdb

    def _first(self, statement) -> Optional[Movie]:
        model = self._session.exec(statement).first()
        if model:
            return self._to_entity(model)
        return None

    def get_by_id(self, movie_id: int) -> Optional[Movie]:
        """Recupere un film par son ID canonique."""
        model = self._session.get(MovieModel, movie_id)
        return self._to_entity(model) if model else None

    def get_by_tmdb_id(self, tmdb_id: int) -> Optional[Movie]:
        """Recupere un film par son ID TMDB."""
        return self._first(select(MovieModel).where(MovieModel.tmdb_id == tmdb_id))

    def get_by_imdb_id(self, imdb_id: str) -> Optional[Movie]:
        """
        Recupere un film par son ID IMDb.

        imdb_id n'est pas unique : le film aux metadonnees les plus recentes
        est retourne.
        """
        statement = (
            select(MovieModel)
            .where(MovieModel.imdb_id == imdb_id)
            .order_by(col(MovieModel.updated_at_tmdb).desc(), col(MovieModel.id).desc())
        )
        return self._first(statement)

    def get_by_trakt_id(self, trakt_id: int) -> Optional[Movie]:
        """Recupere un film par son ID Trakt."""
        return self._first(select(MovieModel).where(MovieModel.trakt_id == trakt_id))

    def get_by_jellyfin_id(self, jellyfin_id: str) -> Optional[Movie]:
        """Recupere un film par son ID d'item Jellyfin."""
        return self._first(select(MovieModel).where(MovieModel.jellyfin_id == jellyfin_id))

    def save(self, movie: Movie) -> Movie:
        """Sauvegarde un film (insertion ou mise a jour par ID ou tmdb_id)."""
        existing = None
        if movie.id:
            existing = self._session.get(MovieModel, movie.id)
        elif movie.tmdb_id is not None:
            statement = select(MovieModel).where(MovieModel.tmdb_id == movie.tmdb_id)
            existing = self._session.exec(statement).first()

        model = existing or MovieModel(tmdb_id=movie.tmdb_id, title=movie.title)
        self._apply(model, movie)
        self._session.add(model)
        self._session.flush()
        self._session.refresh(model)
        return self._to_entity(model)

    def touch(self, movie_id: int, at: datetime) -> None:
        """Met a jour updated_at_tmdb sans toucher aux metadonnees."""
        model = self._session.get(MovieModel, movie_id)
        if model is not None:
            model.updated_at_tmdb = at
            self._session.add(model)
            self._session.flush()

    def list_least_recently_updated(self, limit: int) -> list[Movie]:
        """Films jamais rafraichis d'abord, puis par updated_at_tmdb croissant."""
        statement = (
            select(MovieModel)
            .order_by(
                col(MovieModel.updated_at_tmdb).is_not(None),
                col(MovieModel.updated_at_tmdb).asc(),
                col(MovieModel.id).asc(),
            )
            .limit(limit)
        )
        models = self._session.exec(statement).all()
        return [self._to_entity(model) for model in models]

    def list_with_poster(self, limit: Optional[int] = None) -> list[Movie]:
        """Liste les films ayant un poster TMDB."""
        statement = (
            select(MovieModel)
            .where(col(MovieModel.tmdb_poster_path).is_not(None))
            .order_by(col(MovieModel.id).asc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        models = self._session.exec(statement).all()
        return [self._to_entity(model) for model in models]

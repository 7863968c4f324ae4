"""
Modeles SQLModel pour la base de donnees CineSync.

Ces modeles representent les tables de la base (SQLite ou MySQL). Ils sont
distincts des entites de domaine (dataclass dans core/entities/) selon
l'architecture hexagonale.

Tables:
- movie: Films canoniques avec metadonnees TMDB et IDs fournisseurs
- movie_user_watch_dates: Lectures par (utilisateur, film, jour)
- movie_user_rating: Note personnelle par (utilisateur, film)
- user_media_server_cache: Derniere vue du serveur media par utilisateur
- job: File de jobs persistante
- user: Identifiants des fournisseurs par utilisateur

Les champs JSON (*_json, parameters) stockent des structures serialisees.
"""

import json
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import Column, Text, UniqueConstraint
from sqlmodel import Field, Index, SQLModel


class MovieModel(SQLModel, table=True):
    """
    Film canonique.

    Les champs de metadonnees proviennent exclusivement de TMDB.
    """

    __tablename__ = "movie"

    id: Optional[int] = Field(default=None, primary_key=True)
    tmdb_id: int = Field(unique=True, index=True)
    trakt_id: Optional[int] = Field(default=None, unique=True)
    jellyfin_id: Optional[str] = Field(default=None, unique=True)
    imdb_id: Optional[str] = Field(default=None, index=True)
    title: str = Field(index=True)
    tagline: Optional[str] = None
    overview: Optional[str] = Field(default=None, sa_column=Column(Text))
    original_language: Optional[str] = None
    release_date: Optional[date] = None
    runtime: Optional[int] = None  # minutes
    tmdb_vote_average: Optional[float] = None
    tmdb_vote_count: Optional[int] = None
    tmdb_poster_path: Optional[str] = None
    genres_json: Optional[str] = None  # JSON: ["Action", "Drama"]
    updated_at_tmdb: Optional[datetime] = Field(default=None, index=True)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)

    @property
    def genres(self) -> list[str]:
        """Retourne les genres deserialises."""
        if self.genres_json:
            return json.loads(self.genres_json)
        return []

    @genres.setter
    def genres(self, value: list[str]) -> None:
        """Serialise les genres en JSON."""
        self.genres_json = json.dumps(list(value))


class WatchDateModel(SQLModel, table=True):
    """Lectures d'un film par un utilisateur sur un jour calendaire."""

    __tablename__ = "movie_user_watch_dates"

    user_id: int = Field(primary_key=True)
    movie_id: int = Field(primary_key=True, foreign_key="movie.id")
    watched_at: date = Field(primary_key=True)
    plays: int = Field(default=1)


class RatingModel(SQLModel, table=True):
    """Note personnelle (1..10) d'un utilisateur pour un film."""

    __tablename__ = "movie_user_rating"

    user_id: int = Field(primary_key=True)
    movie_id: int = Field(primary_key=True, foreign_key="movie.id")
    rating: int
    source: Optional[str] = None  # social, csv, media_server
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class MediaServerCacheModel(SQLModel, table=True):
    """Item du serveur media tel que vu au dernier rafraichissement."""

    __tablename__ = "user_media_server_cache"
    __table_args__ = (
        UniqueConstraint("user_id", "jellyfin_item_id", name="uq_media_server_cache_item"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    jellyfin_item_id: str
    tmdb_id: Optional[int] = Field(default=None, index=True)
    watched: bool = Field(default=False)
    last_watch_date: Optional[date] = None
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class JobModel(SQLModel, table=True):
    """
    Job de la file persistante.

    parameters contient les parametres serialises en JSON, y compris les
    cles reservees _summary et _failure.
    """

    __tablename__ = "job"
    __table_args__ = (
        Index("idx_job_status_created", "status", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    type: str = Field(index=True)
    status: str = Field(default="waiting")
    parameters: str = Field(default="{}", sa_column=Column(Text, nullable=False, default="{}"))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def params(self) -> dict[str, Any]:
        """Retourne les parametres deserialises."""
        if self.parameters:
            return json.loads(self.parameters)
        return {}

    @params.setter
    def params(self, value: dict[str, Any]) -> None:
        """Serialise les parametres en JSON."""
        self.parameters = json.dumps(value, default=str)


class UserModel(SQLModel, table=True):
    """
    Utilisateur et identifiants de ses fournisseurs.

    Le compte lui-meme est gere ailleurs ; seuls les identifiants sont lus,
    les tokens rafraichis reecrits et les acces invalides marques.
    """

    __tablename__ = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    trakt_access_token: Optional[str] = None
    trakt_refresh_token: Optional[str] = None
    trakt_token_expires_at: Optional[datetime] = None
    trakt_credentials_valid: bool = Field(default=True)
    jellyfin_server_url: Optional[str] = None
    jellyfin_user_id: Optional[str] = None
    jellyfin_access_token: Optional[str] = None
    jellyfin_credentials_valid: bool = Field(default=True)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)

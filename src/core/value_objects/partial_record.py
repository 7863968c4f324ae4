"""
Objets valeur pour les enregistrements partiels issus des sources.

Chaque client source convertit ses enregistrements natifs en CanonicalPartial,
en attente de resolution vers un film canonique puis de reconciliation.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class SourceKind(Enum):
    """Source d'un enregistrement (sert aussi a la precedence des notes).

    Valeurs:
        SOCIAL: Service social de suivi de films (Trakt)
        CSV: Export personnel au format CSV
        MEDIA_SERVER: Serveur media personnel (Jellyfin)
    """

    SOCIAL = "social"
    CSV = "csv"
    MEDIA_SERVER = "media_server"


@dataclass(frozen=True)
class CanonicalPartial:
    """
    Enregistrement source normalise, porteur d'au moins un identifiant.

    Le titre compte comme identifiant de dernier recours (exports CSV qui
    n'exposent que le titre) ; il est resolu par recherche TMDB.

    Attributs:
        title: Titre tel que rapporte par la source
        tmdb_id: ID TMDB (identifiant le plus fiable)
        trakt_id: ID Trakt
        jellyfin_id: ID d'item Jellyfin
        imdb_id: ID IMDb
        year: Annee de sortie, pour affiner la recherche par titre
        watch_date: Jour du visionnage (sans heure)
        rating: Note 1..10
    """

    title: str = ""
    tmdb_id: Optional[int] = None
    trakt_id: Optional[int] = None
    jellyfin_id: Optional[str] = None
    imdb_id: Optional[str] = None
    year: Optional[int] = None
    watch_date: Optional[date] = None
    rating: Optional[int] = None

    @property
    def has_external_id(self) -> bool:
        """Vrai si au moins un identifiant fournisseur est renseigne."""
        return any(
            value is not None
            for value in (self.tmdb_id, self.trakt_id, self.jellyfin_id, self.imdb_id)
        )

    @property
    def has_identifier(self) -> bool:
        """Vrai si l'enregistrement peut etre resolu (identifiant ou titre)."""
        return self.has_external_id or bool(self.title.strip())

    def describe(self) -> str:
        """Representation courte pour les logs."""
        ids = ", ".join(
            f"{name}={value}"
            for name, value in (
                ("tmdb", self.tmdb_id),
                ("imdb", self.imdb_id),
                ("trakt", self.trakt_id),
                ("jellyfin", self.jellyfin_id),
            )
            if value is not None
        )
        return f"{self.title!r} ({ids})" if ids else repr(self.title)

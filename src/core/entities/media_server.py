"""
Entités du cache media-server (Jellyfin).

MediaServerItem est l'enregistrement tel que vu par le serveur a un instant
donne ; MediaServerCacheEntry est la copie persistee par utilisateur qui sert
de base de comparaison pour le rafraichissement suivant.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class MediaServerItem:
    """
    Film tel que rapporte par le serveur media.

    Attributs :
        item_id : ID de l'item cote serveur
        tmdb_id : ID TMDB depuis les ProviderIds
        title : Nom de l'item
        year : Annee de production
        imdb_id : ID IMDb depuis les ProviderIds, si present
        watched : Statut "vu" cote serveur
        last_watch_date : Jour de la derniere lecture
    """

    item_id: str
    tmdb_id: Optional[int]
    title: str = ""
    year: Optional[int] = None
    imdb_id: Optional[str] = None
    watched: bool = False
    last_watch_date: Optional[date] = None


@dataclass
class MediaServerCacheEntry:
    """Entree du cache media-server pour un utilisateur."""

    user_id: int
    item_id: str
    tmdb_id: Optional[int] = None
    watched: bool = False
    last_watch_date: Optional[date] = None
    cached_at: Optional[datetime] = None

    def is_unchanged_watched(self, item: MediaServerItem) -> bool:
        """
        Vrai si l'item est deja vu, inchange, et peut donc etre ignore.

        Un item qui repasse a "non vu" n'est jamais ignore pour que la
        reconciliation observe le changement.
        """
        return (
            self.watched == item.watched
            and self.tmdb_id == item.tmdb_id
            and self.watched
        )

    @classmethod
    def from_item(cls, user_id: int, item: MediaServerItem) -> "MediaServerCacheEntry":
        """Construit l'entree de cache correspondant a un item du serveur."""
        return cls(
            user_id=user_id,
            item_id=item.item_id,
            tmdb_id=item.tmdb_id,
            watched=item.watched,
            last_watch_date=item.last_watch_date,
        )

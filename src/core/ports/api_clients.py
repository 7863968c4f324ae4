"""
Interfaces ports pour les clients API et les sources d'historique.

Interfaces abstraites (ports) définissant les contrats pour les fournisseurs
externes. Les implémentations (adaptateurs) fournissent les clients concrets :
TMDB pour les métadonnées, Trakt pour le service social, Jellyfin pour le
serveur média et l'importeur CSV pour les exports personnels.

Chaque source expose une séquence paresseuse de pages d'enregistrements natifs
et une conversion `to_canonical_partial()` vers CanonicalPartial.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from src.core.entities.media_server import MediaServerItem
from src.core.value_objects import CanonicalPartial, SourceKind


@dataclass
class SearchResult:
    """
    Résultat de recherche depuis l'API de métadonnées.

    Attributs :
        id : ID TMDB
        title : Titre
        original_title : Titre en langue originale
        year : Année de sortie
        source : Identifiant de la source API ("tmdb")
    """

    id: str
    title: str
    original_title: Optional[str] = None
    year: Optional[int] = None
    source: str = ""


@dataclass
class MovieDetails:
    """
    Métadonnées complètes d'un film depuis l'API de métadonnées.

    Utilisées pour créer ou rafraîchir le film canonique.
    """

    tmdb_id: int
    title: str
    tagline: Optional[str] = None
    overview: Optional[str] = None
    original_language: Optional[str] = None
    release_date: Optional[date] = None
    runtime: Optional[int] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    poster_path: Optional[str] = None
    imdb_id: Optional[str] = None
    genres: tuple[str, ...] = ()


class IMetadataClient(ABC):
    """
    Interface de l'API de métadonnées de référence (TMDB).

    Seule source des champs canoniques d'un film.
    """

    @abstractmethod
    async def search(self, query: str, year: Optional[int] = None) -> list[SearchResult]:
        """
        Recherche des films par titre.

        Args :
            query : Titre exact recherché
            year : Année de sortie pour affiner la recherche

        Retourne :
            Résultats dans l'ordre de pertinence de l'API
        """
        ...

    @abstractmethod
    async def get_details(self, tmdb_id: int, use_cache: bool = True) -> Optional[MovieDetails]:
        """
        Récupère les métadonnées complètes d'un film.

        Args :
            tmdb_id : ID TMDB
            use_cache : False pour forcer un appel API (rafraîchissement)

        Retourne :
            Détails du film, ou None si le film n'existe pas (404)
        """
        ...

    @abstractmethod
    async def find_by_imdb_id(self, imdb_id: str) -> Optional[int]:
        """Retourne l'ID TMDB correspondant à un ID IMDb, ou None."""
        ...

    @property
    @abstractmethod
    def source(self) -> str:
        """Retourne l'identifiant de la source API (ex: 'tmdb')."""
        ...


class ISourceClient(ABC):
    """
    Capacité commune des sources d'historique.

    Les enregistrements natifs sont convertis un par un ; une conversion
    impossible lève ProtocolError et l'enregistrement est ignoré.
    """

    @property
    @abstractmethod
    def kind(self) -> SourceKind:
        """Type de source (précédence des notes)."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Nom du fournisseur (ex: 'trakt')."""
        ...

    @abstractmethod
    def to_canonical_partial(self, record: Any) -> CanonicalPartial:
        """Convertit un enregistrement natif en CanonicalPartial."""
        ...


class ISocialClient(ISourceClient):
    """Service social de suivi de films (historique daté et notes)."""

    @abstractmethod
    def iter_history_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Pages d'événements de visionnage (jusqu'à 1000 par page)."""
        ...

    @abstractmethod
    def iter_rating_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Pages de notes de films."""
        ...


class IMediaServerClient(ISourceClient):
    """Serveur média personnel exposant un statut "vu" par item."""

    @abstractmethod
    def iter_item_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Pages d'items bruts de la bibliothèque de films."""
        ...

    @abstractmethod
    def parse_item(self, raw: dict[str, Any]) -> Optional[MediaServerItem]:
        """
        Convertit un item brut.

        Retourne None pour un item sans ID TMDB (hors périmètre) et lève
        ProtocolError pour un item malformé.
        """
        ...


class IExportReader(ISourceClient):
    """Export personnel lu depuis un fichier (historique ou notes)."""

    @abstractmethod
    def iter_pages(self) -> Iterator[list[dict[str, Any]]]:
        """Pages de lignes du fichier."""
        ...

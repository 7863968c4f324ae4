"""
Clients API externes.

Ce module fournit les adaptateurs pour communiquer avec les fournisseurs:
- TMDB: API de metadonnees de reference
- Trakt: service social (historique date et notes)
- Jellyfin: serveur media personnel (statut "vu")

Infrastructure partagee:
- APICache: Cache persistant avec TTL differencies (recherche 24h, details 7j)
- request_with_retry / with_retry: backoff exponentiel et conversion des
  statuts HTTP en erreurs du domaine
"""

from src.adapters.api.cache import APICache
from src.adapters.api.jellyfin_client import JellyfinClient
from src.adapters.api.retry import request_with_retry, with_retry
from src.adapters.api.tmdb_client import TMDBClient
from src.adapters.api.trakt_client import TraktClient

__all__ = [
    "APICache",
    "JellyfinClient",
    "TMDBClient",
    "TraktClient",
    "request_with_retry",
    "with_retry",
]

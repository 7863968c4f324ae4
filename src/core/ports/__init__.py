"""
Ports (interfaces abstraites) définissant les contrats pour les adaptateurs.

Les ports sont les frontières de l'architecture hexagonale. Ils définissent
ce dont le domaine a besoin du monde extérieur sans spécifier
comment ces besoins sont satisfaits.

Ports repository : Contrats de persistance des données
- IMovieRepository : Films canoniques
- IWatchHistoryRepository : Visionnages par jour
- IRatingRepository : Notes personnelles
- IMediaServerCacheRepository : Cache des items du serveur média
- IStorage : Repositories de données partageant une transaction
- IJobRepository : File de jobs
- ICredentialRepository : Identifiants fournisseurs par utilisateur

Ports client API : Contrats pour les services externes
- IMetadataClient : API de métadonnées (TMDB)
- ISourceClient, ISocialClient, IMediaServerClient, IExportReader : Sources d'historique
- SearchResult, MovieDetails : Résultats de l'API de métadonnées
"""

from src.core.ports.api_clients import (
    IExportReader,
    IMediaServerClient,
    IMetadataClient,
    ISocialClient,
    ISourceClient,
    MovieDetails,
    SearchResult,
)
from src.core.ports.repositories import (
    ICredentialRepository,
    IJobRepository,
    IMediaServerCacheRepository,
    IMovieRepository,
    IRatingRepository,
    IStorage,
    IWatchHistoryRepository,
)

__all__ = [
    # Repositories
    "IMovieRepository",
    "IWatchHistoryRepository",
    "IRatingRepository",
    "IMediaServerCacheRepository",
    "IStorage",
    "IJobRepository",
    "ICredentialRepository",
    # Clients API
    "IMetadataClient",
    "ISourceClient",
    "ISocialClient",
    "IMediaServerClient",
    "IExportReader",
    "SearchResult",
    "MovieDetails",
]

"""
Container d'injection de dependances via dependency-injector.

Fournit une gestion centralisee des dependances pour la CLI et les workers.
Chaque processus worker construit son propre container (engine, clients HTTP).
"""

from dependency_injector import containers, providers

from .adapters.api.cache import APICache
from .adapters.api.jellyfin_client import JellyfinClient
from .adapters.api.tmdb_client import TMDBClient
from .adapters.api.trakt_client import TraktClient
from .adapters.csv.csv_importer import CsvImporter
from .config import Settings
from .infrastructure.persistence.database import create_db_engine, init_db
from .infrastructure.persistence.repositories import (
    SQLModelCredentialRepository,
    SQLModelJobRepository,
)
from .infrastructure.persistence.storage import SQLModelStorage
from .services.job_dispatcher import JobDispatcher
from .services.job_runners import JobRunners
from .services.orchestrator import ImportOrchestrator
from .services.worker import JobWorker


class Container(containers.DeclarativeContainer):
    """Container DI de l'application.

    Utilisation :
        container = Container()
        container.database.init()  # Cree les tables si besoin
        worker = container.worker()
        orchestrator = container.orchestrator()
    """

    # Configuration - singleton charge une seule fois
    config = providers.Singleton(Settings)

    # Database - engine unique par processus, Resource pour initialisation unique
    engine = providers.Singleton(
        create_db_engine,
        database_url=config.provided.database_url,
    )
    database = providers.Resource(init_db, engine=engine)

    # Stockage des donnees - Factory : une session fraiche par job
    storage = providers.Factory(SQLModelStorage, engine=engine)

    # File de jobs et identifiants - sessions courtes, commit immediat
    job_repository = providers.Singleton(SQLModelJobRepository, engine=engine)
    credential_repository = providers.Singleton(SQLModelCredentialRepository, engine=engine)

    # Cache API - Singleton pour partage entre clients
    api_cache = providers.Singleton(
        APICache,
        cache_dir=config.provided.api_cache_dir,
    )

    # Client TMDB - partage par tous les jobs du processus
    tmdb_client = providers.Singleton(
        TMDBClient,
        api_key=config.provided.tmdb_api_key,
        cache=api_cache,
        base_url=config.provided.tmdb_base_url,
        image_base_url=config.provided.tmdb_image_base_url,
        language=config.provided.tmdb_language,
        timeout=config.provided.http_timeout,
        max_attempts=config.provided.retry_max_attempts,
        initial_wait=config.provided.retry_initial_wait,
        max_wait=config.provided.retry_max_wait,
    )

    # Clients par utilisateur - Factory, les identifiants sont fournis par le job
    trakt_client = providers.Factory(
        TraktClient,
        client_id=config.provided.trakt_client_id,
        client_secret=config.provided.trakt_client_secret,
        base_url=config.provided.trakt_base_url,
        page_size=config.provided.page_size,
        timeout=config.provided.http_timeout,
        max_attempts=config.provided.retry_max_attempts,
        initial_wait=config.provided.retry_initial_wait,
        max_wait=config.provided.retry_max_wait,
    )
    jellyfin_client = providers.Factory(
        JellyfinClient,
        page_size=config.provided.page_size,
        timeout=config.provided.http_timeout,
        max_attempts=config.provided.retry_max_attempts,
        initial_wait=config.provided.retry_initial_wait,
        max_wait=config.provided.retry_max_wait,
    )
    csv_importer = providers.Factory(CsvImporter, page_size=config.provided.page_size)

    # Routines de jobs - recoivent les fabriques, pas les instances
    job_runners = providers.Singleton(
        JobRunners,
        storage_factory=storage.provider,
        metadata_client=tmdb_client,
        credentials=credential_repository,
        trakt_client_factory=trakt_client.provider,
        jellyfin_client_factory=jellyfin_client.provider,
        csv_importer_factory=csv_importer.provider,
        poster_cache_dir=config.provided.poster_cache_dir,
        rating_precedence=config.provided.rating_precedence,
        error_threshold=config.provided.protocol_error_threshold,
        metadata_refresh_limit=config.provided.metadata_refresh_limit,
    )

    dispatcher = providers.Singleton(
        JobDispatcher,
        routines=job_runners.provided.table.call(),
    )

    worker = providers.Singleton(
        JobWorker,
        jobs=job_repository,
        credentials=credential_repository,
        dispatcher=dispatcher,
        poll_interval=config.provided.worker_poll_interval,
    )

    orchestrator = providers.Factory(
        ImportOrchestrator,
        jobs=job_repository,
        credentials=credential_repository,
    )

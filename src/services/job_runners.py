"""
Routines executees par le worker, une par type de job.

Chaque routine construit ses collaborateurs pour la duree du job (stockage,
clients par utilisateur, resolveur memoise, moteur de reconciliation) puis
les libere.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from src.core.entities.job import JobType
from src.core.entities.user import JellyfinCredentials, TraktCredentials
from src.core.exceptions import AuthError
from src.core.ports.api_clients import IExportReader, IMediaServerClient, IMetadataClient, ISocialClient
from src.core.ports.repositories import ICredentialRepository, IStorage
from src.core.value_objects import SourceKind
from src.services.csv_import import CsvImportService
from src.services.identifier_resolver import IdentifierResolver
from src.services.job_context import JobContext
from src.services.media_server_sync import MediaServerSyncService
from src.services.metadata_cache import MetadataCache
from src.services.metadata_refresher import MetadataRefresherService
from src.services.poster_cache import PosterCacheService
from src.services.reconciliation import (
    DEFAULT_ERROR_THRESHOLD,
    DEFAULT_RATING_PRECEDENCE,
    BatchKind,
    ReconciliationEngine,
    WatchMode,
)
from src.services.social_import import SocialImportService


class JobRunners:
    """
    Fabrique des routines de jobs.

    Les fabriques de clients et de stockage sont injectees par le container.
    """

    def __init__(
        self,
        storage_factory: Callable[[], IStorage],
        metadata_client: IMetadataClient,
        credentials: ICredentialRepository,
        trakt_client_factory: Callable[..., ISocialClient],
        jellyfin_client_factory: Callable[[JellyfinCredentials], IMediaServerClient],
        csv_importer_factory: Callable[..., IExportReader],
        poster_cache_dir: Path,
        rating_precedence: Optional[list[str]] = None,
        error_threshold: float = DEFAULT_ERROR_THRESHOLD,
        metadata_refresh_limit: int = 200,
    ) -> None:
        self._storage_factory = storage_factory
        self._metadata_client = metadata_client
        self._credentials = credentials
        self._trakt_client_factory = trakt_client_factory
        self._jellyfin_client_factory = jellyfin_client_factory
        self._csv_importer_factory = csv_importer_factory
        self._poster_cache_dir = Path(poster_cache_dir)
        self._rating_precedence = list(rating_precedence or DEFAULT_RATING_PRECEDENCE)
        self._error_threshold = error_threshold
        self._metadata_refresh_limit = metadata_refresh_limit

    def table(self) -> dict[JobType, Callable[[JobContext], Any]]:
        """Table exhaustive type de job -> routine."""
        return {
            JobType.MEDIA_SERVER_REFRESH: self.media_server_refresh,
            JobType.SOCIAL_IMPORT_HISTORY: self.social_import_history,
            JobType.SOCIAL_IMPORT_RATINGS: self.social_import_ratings,
            JobType.CSV_IMPORT_HISTORY: self.csv_import_history,
            JobType.CSV_IMPORT_RATINGS: self.csv_import_ratings,
            JobType.METADATA_REFRESH: self.metadata_refresh,
            JobType.POSTER_CACHE_REFRESH: self.poster_cache_refresh,
        }

    @asynccontextmanager
    async def _storage(self) -> AsyncIterator[IStorage]:
        storage = self._storage_factory()
        try:
            yield storage
        finally:
            close = getattr(storage, "close", None)
            if close is not None:
                close()

    def _engine(
        self,
        storage: IStorage,
        context: JobContext,
        source: SourceKind,
        watch_mode: WatchMode = WatchMode.DATED_EVENTS,
    ) -> ReconciliationEngine:
        """Moteur de reconciliation et resolveur propres au job."""
        resolver = IdentifierResolver(
            MetadataCache(storage.movies, self._metadata_client),
            storage.movies,
            self._metadata_client,
        )
        return ReconciliationEngine(
            storage,
            resolver,
            user_id=context.user_id,
            source=source,
            watch_mode=watch_mode,
            rating_precedence=context.param("rating_precedence", self._rating_precedence),
            error_threshold=self._error_threshold,
        )

    # -- Serveur media ------------------------------------------------------

    async def media_server_refresh(self, context: JobContext) -> None:
        credentials = self._credentials.get_jellyfin_credentials(context.user_id)
        if credentials is None:
            raise AuthError("jellyfin", f"No valid Jellyfin credentials for user {context.user_id}")

        client = self._jellyfin_client_factory(credentials=credentials)
        try:
            async with self._storage() as storage:
                engine = self._engine(storage, context, SourceKind.MEDIA_SERVER, WatchMode.LAST_SEEN)
                await MediaServerSyncService(
                    client, engine, storage, context, error_threshold=self._error_threshold
                ).refresh()
        finally:
            await _close(client)

    # -- Service social -----------------------------------------------------

    def _trakt_client(self, context: JobContext) -> ISocialClient:
        credentials = self._credentials.get_trakt_credentials(context.user_id)
        if credentials is None:
            raise AuthError("trakt", f"No valid Trakt credentials for user {context.user_id}")

        def on_token_refreshed(refreshed: TraktCredentials) -> None:
            self._credentials.save_trakt_token(refreshed)

        return self._trakt_client_factory(credentials=credentials, on_token_refreshed=on_token_refreshed)

    async def social_import_history(self, context: JobContext) -> None:
        client = self._trakt_client(context)
        try:
            async with self._storage() as storage:
                engine = self._engine(storage, context, SourceKind.SOCIAL)
                await SocialImportService(client, engine, storage, context).import_history()
        finally:
            await _close(client)

    async def social_import_ratings(self, context: JobContext) -> None:
        client = self._trakt_client(context)
        try:
            async with self._storage() as storage:
                engine = self._engine(storage, context, SourceKind.SOCIAL)
                await SocialImportService(client, engine, storage, context).import_ratings()
        finally:
            await _close(client)

    # -- Exports CSV --------------------------------------------------------

    async def _csv_import(self, context: JobContext, kind: BatchKind) -> None:
        file_path = context.param("file")
        if not file_path:
            raise ValueError("CSV import job requires a 'file' parameter")

        importer = self._csv_importer_factory(
            file_path=Path(file_path),
            ratings=kind is BatchKind.RATINGS,
            date_format=context.param("date_format", "d/m/Y"),
        )
        async with self._storage() as storage:
            engine = self._engine(storage, context, SourceKind.CSV)
            await CsvImportService(importer, engine, storage, context).run(kind)

    async def csv_import_history(self, context: JobContext) -> None:
        await self._csv_import(context, BatchKind.HISTORY)

    async def csv_import_ratings(self, context: JobContext) -> None:
        await self._csv_import(context, BatchKind.RATINGS)

    # -- Jobs systeme -------------------------------------------------------

    async def metadata_refresh(self, context: JobContext) -> None:
        limit = int(context.param("limit", self._metadata_refresh_limit))
        async with self._storage() as storage:
            await MetadataRefresherService(storage, self._metadata_client, context).refresh(limit)

    async def poster_cache_refresh(self, context: JobContext) -> None:
        async with self._storage() as storage:
            await PosterCacheService(
                storage.movies, self._metadata_client, self._poster_cache_dir, context
            ).refresh(force=bool(context.param("force", False)))


async def _close(client: Any) -> None:
    close = getattr(client, "close", None)
    if close is not None:
        await close()

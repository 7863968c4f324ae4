"""
Rafraichissement du cache media-server et reconciliation des visionnages.

Le cache par utilisateur est la derniere vue connue de la bibliotheque
Jellyfin. Un item deja vu et inchange est ignore ; les autres sont
reecrits (suppression puis insertion) et les items vus reecrits sont
reconcilies a leur date de derniere lecture. Les entrees des items que le
serveur n'emet plus sont supprimees. Le tout dans une seule transaction.
"""

from dataclasses import asdict, dataclass

from src.core.entities.media_server import MediaServerCacheEntry, MediaServerItem
from src.core.exceptions import ProtocolError
from src.core.ports.api_clients import IMediaServerClient
from src.core.ports.repositories import IStorage
from src.services.job_context import JobContext
from src.services.reconciliation import (
    BatchKind,
    ImportSummary,
    ReconciliationEngine,
    check_failure_ratio,
)


@dataclass
class MediaServerRefreshStats:
    """Compteurs du rafraichissement du cache."""

    seen: int = 0
    unchanged: int = 0
    rewritten: int = 0
    removed: int = 0
    ignored: int = 0
    invalid: int = 0


class MediaServerSyncService:
    """
    Job media-server-refresh pour un utilisateur.

    Example:
        service = MediaServerSyncService(client, engine, storage, context)
        summary = await service.refresh()
    """

    def __init__(
        self,
        client: IMediaServerClient,
        engine: ReconciliationEngine,
        storage: IStorage,
        context: JobContext,
        error_threshold: float = 0.10,
    ) -> None:
        self._client = client
        self._engine = engine
        self._storage = storage
        self._context = context
        self._error_threshold = error_threshold

    async def refresh(self) -> ImportSummary:
        """
        Rafraichit le cache puis reconcilie les items vus reecrits.

        Returns:
            Compteurs de reconciliation (items invalides comptes en failed)
        """
        user_id = self._context.user_id
        stats = MediaServerRefreshStats()
        to_reconcile: list[MediaServerItem] = []
        seen_ids: set[str] = set()

        with self._storage.transaction():
            cache = self._storage.media_server_cache
            snapshot = cache.list_for_user(user_id)

            async for page in self._client.iter_item_pages():
                self._context.checkpoint()
                page_invalid = 0
                for raw in page:
                    try:
                        item = self._client.parse_item(raw)
                    except ProtocolError as e:
                        self._context.logger.warning("Item Jellyfin invalide", error=str(e))
                        page_invalid += 1
                        continue
                    if item is None:
                        stats.ignored += 1
                        continue

                    stats.seen += 1
                    seen_ids.add(item.item_id)
                    cached = snapshot.get(item.item_id)
                    if cached is not None and cached.is_unchanged_watched(item):
                        stats.unchanged += 1
                        continue

                    cache.replace(MediaServerCacheEntry.from_item(user_id, item))
                    stats.rewritten += 1
                    if item.watched and item.last_watch_date is not None:
                        to_reconcile.append(item)

                stats.invalid += page_invalid
                check_failure_ratio(
                    ImportSummary(applied=len(page) - page_invalid, failed=page_invalid),
                    self._error_threshold,
                )

            stats.removed = cache.delete_except(user_id, seen_ids)

            summary = await self._engine.import_batch(
                to_reconcile, self._client.to_canonical_partial, BatchKind.HISTORY
            )
            summary.failed += stats.invalid

        self._context.report({**summary.as_dict(), "cache": asdict(stats)})
        self._context.logger.info("Cache Jellyfin rafraichi", **asdict(stats))
        return summary

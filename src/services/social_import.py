"""
Import de l'historique et des notes depuis le service social (Trakt).
"""

from src.core.ports.api_clients import ISocialClient
from src.core.ports.repositories import IStorage
from src.services.job_context import JobContext
from src.services.paged_import import import_pages
from src.services.reconciliation import BatchKind, ImportSummary, ReconciliationEngine


class SocialImportService:
    """
    Jobs social-import-history et social-import-ratings.

    L'historique est une suite d'evenements dates : le reimporter ne fait
    pas croitre les lectures.
    """

    def __init__(
        self,
        client: ISocialClient,
        engine: ReconciliationEngine,
        storage: IStorage,
        context: JobContext,
    ) -> None:
        self._client = client
        self._engine = engine
        self._storage = storage
        self._context = context

    async def import_history(self) -> ImportSummary:
        """Importe tout l'historique de visionnage."""
        summary = await import_pages(
            self._client.iter_history_pages(),
            self._client.to_canonical_partial,
            BatchKind.HISTORY,
            self._engine,
            self._storage,
            self._context,
        )
        self._context.logger.info("Historique Trakt importe", **summary.as_dict())
        return summary

    async def import_ratings(self) -> ImportSummary:
        """Importe toutes les notes."""
        summary = await import_pages(
            self._client.iter_rating_pages(),
            self._client.to_canonical_partial,
            BatchKind.RATINGS,
            self._engine,
            self._storage,
            self._context,
        )
        self._context.logger.info("Notes Trakt importees", **summary.as_dict())
        return summary

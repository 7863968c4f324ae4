"""
Import des exports CSV personnels (historique ou notes).
"""

from src.core.ports.api_clients import IExportReader
from src.core.ports.repositories import IStorage
from src.services.job_context import JobContext
from src.services.paged_import import import_pages
from src.services.reconciliation import BatchKind, ImportSummary, ReconciliationEngine


class CsvImportService:
    """
    Jobs csv-import-history et csv-import-ratings.

    Les titres sont resolus par recherche TMDB (titre + annee si presente).
    """

    def __init__(
        self,
        importer: IExportReader,
        engine: ReconciliationEngine,
        storage: IStorage,
        context: JobContext,
    ) -> None:
        self._importer = importer
        self._engine = engine
        self._storage = storage
        self._context = context

    async def run(self, kind: BatchKind) -> ImportSummary:
        summary = await import_pages(
            self._importer.iter_pages(),
            self._importer.to_canonical_partial,
            kind,
            self._engine,
            self._storage,
            self._context,
        )
        self._context.logger.info("Export CSV importe", kind=kind.value, **summary.as_dict())
        return summary

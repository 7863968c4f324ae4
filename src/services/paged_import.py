"""
Import page par page d'une source d'evenements (Trakt, CSV).

Chaque page est reconciliee dans sa propre transaction : une erreur sur
une page laisse les pages precedentes en base et les compteurs du job
refletent ce travail partiel.
"""

from collections.abc import AsyncIterable, Callable, Iterable
from typing import Any, Union

from src.core.ports.repositories import IStorage
from src.core.value_objects import CanonicalPartial
from src.services.job_context import JobContext
from src.services.reconciliation import BatchKind, ImportSummary, ReconciliationEngine

Pages = Union[AsyncIterable[list[Any]], Iterable[list[Any]]]


async def _aiter(pages: Pages):
    if isinstance(pages, AsyncIterable):
        async for page in pages:
            yield page
    else:
        for page in pages:
            yield page


async def import_pages(
    pages: Pages,
    convert: Callable[[Any], CanonicalPartial],
    kind: BatchKind,
    engine: ReconciliationEngine,
    storage: IStorage,
    context: JobContext,
) -> ImportSummary:
    """
    Reconcilie les pages une a une.

    Ordre par page : transaction du lot, ecriture des compteurs, puis
    point de controle d'annulation.

    Returns:
        Compteurs cumules du job
    """
    total = ImportSummary()
    context.checkpoint()

    page_number = 0
    async for page in _aiter(pages):
        page_number += 1
        with storage.transaction():
            batch = await engine.import_batch(page, convert, kind)
        total.add(batch)
        context.report(total.as_dict())
        context.logger.info("Page importee", page=page_number, **batch.as_dict())
        context.checkpoint()

    context.report(total.as_dict())
    return total
